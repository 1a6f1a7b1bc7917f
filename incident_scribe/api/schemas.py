"""
Request/response models for the incident API.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, List, Dict, Any
from datetime import datetime

from ..core.schema import Record, VALID_STATUSES

EDITABLE_RECORD_FIELDS = set(Record.field_names()) - {"status", "signature", "signed_at"}


class RecordFields(BaseModel):
    """Partial record: every field optional, unknown fields rejected."""
    summary: Optional[str] = None
    antecedent: Optional[str] = None
    behavior: Optional[str] = None
    consequence: Optional[str] = None
    incident_type: Optional[str] = None
    function_of_behavior: Optional[List[str]] = None
    date: Optional[str] = None
    time: Optional[str] = None
    location: Optional[str] = None

    model_config = {"extra": "forbid"}

    def to_update(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class RecordCreateRequest(RecordFields):
    pass


class RecordUpdateRequest(RecordFields):
    actor: Optional[str] = None

    def to_update(self) -> Dict[str, Any]:
        update = super().to_update()
        update.pop("actor", None)
        return update


class FinalizeRequest(BaseModel):
    signature: str
    actor: Optional[str] = None

    @field_validator('signature')
    @classmethod
    def signature_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('signature cannot be empty')
        return v


class RecordResponse(BaseModel):
    id: str
    summary: str
    antecedent: str
    behavior: str
    consequence: str
    incident_type: str
    function_of_behavior: List[str]
    date: str
    time: str
    status: str
    location: str
    signature: str
    signed_at: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator('status')
    @classmethod
    def status_must_be_valid(cls, v):
        if v not in VALID_STATUSES:
            raise ValueError(f'status must be one of: {list(VALID_STATUSES)}')
        return v


class RecordListResponse(BaseModel):
    records: List[RecordResponse]


class FieldChange(BaseModel):
    old: Any = None
    new: Any = None


class AuditEntryResponse(BaseModel):
    id: int
    record_id: str
    changes: Dict[str, FieldChange]
    actor: str
    edited_at: datetime


class HistoryResponse(BaseModel):
    record_id: str
    entries: List[AuditEntryResponse]


class CommitResponse(BaseModel):
    record: RecordResponse
    audit_entry: Optional[AuditEntryResponse] = None


class HealthResponse(BaseModel):
    status: str
    version: str
    db_health: bool
    record_count: int


# Editing session models

class SessionCreateRequest(BaseModel):
    record_id: Optional[str] = None


class SessionStateResponse(BaseModel):
    session_id: str
    record_id: Optional[str] = None
    record: Dict[str, Any]
    locked_fields: List[str]
    highlighted_fields: List[str]
    dirty: bool


class MergeResponse(BaseModel):
    changed_fields: List[str]
    state: SessionStateResponse


class ProposalRequest(BaseModel):
    """Raw extractor output; malformed values are ignored by the merge."""
    fields: Dict[str, Any]


class ExtractRequest(BaseModel):
    narrative: str

    @field_validator('narrative')
    @classmethod
    def narrative_must_not_be_empty(cls, v):
        if not v.strip():
            raise ValueError('narrative cannot be empty')
        return v


class EditRequest(BaseModel):
    field: str
    value: Any = None

    @field_validator('field')
    @classmethod
    def field_must_be_editable(cls, v):
        if v not in EDITABLE_RECORD_FIELDS:
            raise ValueError(f'field must be one of: {sorted(EDITABLE_RECORD_FIELDS)}')
        return v


class SessionCommitRequest(BaseModel):
    actor: Optional[str] = None


class ErrorResponse(BaseModel):
    error_type: str
    message: str
    timestamp: datetime = None
    details: Optional[Dict[str, Any]] = None

    def __init__(self, **data):
        super().__init__(timestamp=datetime.now(), **data)


def record_response(record_id: str, record: Record, stored=None) -> RecordResponse:
    data = record.to_dict()
    data["id"] = record_id
    if stored is not None:
        data["created_at"] = stored.created_at
        data["updated_at"] = stored.updated_at
    return RecordResponse(**data)


def audit_response(entry) -> Optional[AuditEntryResponse]:
    if entry is None:
        return None
    return AuditEntryResponse(**entry.to_dict())
