#!/usr/bin/env python3
"""
Serve the incident API with uvicorn.
"""

import argparse

import uvicorn

from incident_scribe.core.config import validate_config, debug_enabled
from incident_scribe.util.logging import logger


def main():
    parser = argparse.ArgumentParser(description="Run the incident API server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", "-p", type=int, default=8000, help="Port")
    args = parser.parse_args()

    for issue in validate_config():
        logger.warning(f"Config issue: {issue}")

    uvicorn.run(
        "incident_scribe.api.main:app",
        host=args.host,
        port=args.port,
        reload=debug_enabled(),
        log_level="debug" if debug_enabled() else "info",
    )


if __name__ == "__main__":
    main()
