"""
Runtime configuration read from the environment.
"""

import os
from pathlib import Path

# Database path configuration
DB_PATH = os.getenv("DB_PATH", "./data/incidents.db")

DEBUG = os.getenv("DEBUG", "true").lower() == "true"

# Extraction service configuration
EXTRACTOR_PROVIDER = os.getenv("EXTRACTOR_PROVIDER", "mock")  # mock|ollama
OLLAMA_MODEL = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
OLLAMA_HOST = os.getenv("OLLAMA_HOST", "http://localhost:11434")
EXTRACTION_TIMEOUT_SEC = float(os.getenv("EXTRACTION_TIMEOUT_SEC", "0"))  # 0 = wait indefinitely

# "Recently updated" emphasis window after a merge
HIGHLIGHT_WINDOW_SEC = float(os.getenv("HIGHLIGHT_WINDOW_SEC", "2.0"))

# Editing sessions untouched for this long are dropped (0 = never)
SESSION_IDLE_TIMEOUT_SEC = float(os.getenv("SESSION_IDLE_TIMEOUT_SEC", "3600"))

# Audit log (edit history) configuration
AUDIT_ENABLED = os.getenv("AUDIT_ENABLED", "true").lower() == "true"
DEFAULT_ACTOR = os.getenv("DEFAULT_ACTOR", "unknown")

VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def ensure_db_directory():
    """Ensure the database directory exists."""
    Path(DB_PATH).parent.mkdir(parents=True, exist_ok=True)


def get_extractor_provider():
    """Get extractor provider (mock|ollama)."""
    return EXTRACTOR_PROVIDER


def get_extraction_timeout():
    """Get extraction timeout in seconds, or None when extraction may hang indefinitely."""
    return EXTRACTION_TIMEOUT_SEC if EXTRACTION_TIMEOUT_SEC > 0 else None


def get_highlight_window():
    """Get highlight window in seconds."""
    return HIGHLIGHT_WINDOW_SEC


def get_session_idle_timeout():
    """Get session idle timeout in seconds, or None when sessions never expire."""
    return SESSION_IDLE_TIMEOUT_SEC if SESSION_IDLE_TIMEOUT_SEC > 0 else None


def is_audit_enabled():
    """Check if edit history recording is enabled."""
    return AUDIT_ENABLED


def validate_config():
    """Validate configuration and return any issues."""
    issues = []

    if EXTRACTOR_PROVIDER not in ["mock", "ollama"]:
        issues.append(f"Invalid EXTRACTOR_PROVIDER: {EXTRACTOR_PROVIDER}")

    if EXTRACTION_TIMEOUT_SEC < 0:
        issues.append("EXTRACTION_TIMEOUT_SEC must be >= 0")

    if HIGHLIGHT_WINDOW_SEC <= 0:
        issues.append("HIGHLIGHT_WINDOW_SEC must be > 0")

    if SESSION_IDLE_TIMEOUT_SEC < 0:
        issues.append("SESSION_IDLE_TIMEOUT_SEC must be >= 0")

    return issues
