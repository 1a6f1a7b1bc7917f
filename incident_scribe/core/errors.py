"""
Error types surfaced to the host.
"""


class IncidentScribeError(Exception):
    """Base class for recoverable conditions reported to the host."""


class RecordNotFoundError(IncidentScribeError):
    def __init__(self, record_id: str):
        super().__init__(f"Record not found: {record_id}")
        self.record_id = record_id


class PersistenceError(IncidentScribeError):
    """The record store rejected or failed a write; the caller may retry."""


class FinalizationError(IncidentScribeError):
    """Finalization refused (blank signature)."""


class AlreadyFinalizedError(FinalizationError):
    def __init__(self, record_id: str):
        super().__init__(f"Record already finalized: {record_id}")
        self.record_id = record_id


class ExtractionError(IncidentScribeError):
    """The extraction service failed or timed out. The live record is untouched."""
