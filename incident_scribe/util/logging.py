"""
Structured operation logging for the merge-and-audit core.
Every accepted merge, lock change, extraction and audit write goes through here.
"""

import logging
from typing import Any, Dict, Iterable, List


class StructuredLogger:
    """Structured logger for merge, lock, extraction and audit operations."""

    def __init__(self, name: str = "incident_scribe"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.INFO):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_merge(self, session_id: str, changed_fields: Iterable[str], locked_fields: Iterable[str]):
        """Log the outcome of one merge."""
        changed = sorted(changed_fields)
        details = {
            "session_id": session_id,
            "changed_fields": changed,
            "locked_fields": sorted(locked_fields),
        }
        self.log_operation("merge", "applied" if changed else "noop", details)

    def log_lock_change(self, session_id: str, field: str, action: str):
        """Log a lock acquire/release."""
        self.log_operation(f"lock.{action}", "success", {"session_id": session_id, "field": field})

    def log_extraction(self, session_id: str, request_seq: int, status: str = "success", details: Dict[str, Any] = None):
        """Log an extraction round trip."""
        log_details = {"session_id": session_id, "request_seq": request_seq}
        if details:
            log_details.update(details)

        level = logging.WARNING if status in ("failed", "out_of_order") else logging.INFO
        self.log_operation("extraction", status, log_details, level=level)

    def log_audit_write(self, record_id: str, actor: str, changed_fields: List[str], status: str = "success", details: Dict[str, Any] = None):
        """Log an audit log append (or its failure)."""
        log_details = {
            "record_id": record_id,
            "actor": actor,
            "changed_fields": changed_fields,
        }
        if details:
            log_details.update(details)

        level = logging.ERROR if status == "failed" else logging.INFO
        self.log_operation("audit.write", status, log_details, level=level)

    def log_record_operation(self, operation: str, record_id: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a record store operation."""
        log_details = {"record_id": record_id}
        if details:
            log_details.update(details)

        self.log_operation(f"record.{operation}", status, log_details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        self.logger.info(message)

    def warning(self, message: str) -> None:
        self.logger.warning(message)

    def error(self, message: str) -> None:
        self.logger.error(message)

    def debug(self, message: str) -> None:
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, max_length: int = 100) -> Any:
    """Truncate long strings (narratives, free text) before they reach the log."""
    if isinstance(payload, dict):
        return {k: sanitize_payload(v, max_length) for k, v in payload.items()}
    elif isinstance(payload, str):
        return payload[:max_length] + "..." if len(payload) > max_length else payload
    elif isinstance(payload, (list, tuple)):
        return [sanitize_payload(item, max_length) for item in payload]
    else:
        return payload
