"""
Record types shared by the merge engine, the differ, the record store and the audit log.
"""

from dataclasses import dataclass, field, asdict, fields, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

STATUS_DRAFT = "draft"
STATUS_SIGNED = "signed"  # finalized
VALID_STATUSES = (STATUS_DRAFT, STATUS_SIGNED)

FALLBACK_INCIDENT_TYPE = "Other"

INCIDENT_TYPES = (
    "Physical Aggression",
    "Verbal Outburst",
    "Property Destruction",
    "Noncompliance",
    "Self-Injury",
    "Elopement",
    FALLBACK_INCIDENT_TYPE,
)

BEHAVIOR_FUNCTIONS = (
    "Escape/Avoidance",
    "Attention Seeking",
    "Obtain Tangible",
    "Sensory Stimulation",
    "Communication",
)

# Fields the extractor may propose values for
TEXT_FIELDS = ("summary", "antecedent", "behavior", "consequence", "date", "time")
TAG_FIELD = "incident_type"
TAG_LIST_FIELD = "function_of_behavior"
EXTRACTABLE_FIELDS = TEXT_FIELDS[:4] + (TAG_FIELD, TAG_LIST_FIELD) + TEXT_FIELDS[4:]


@dataclass
class Record:
    """The structured incident being composed. Identity lives with the store, not here."""
    summary: str = ""
    antecedent: str = ""
    behavior: str = ""
    consequence: str = ""
    incident_type: str = ""
    function_of_behavior: List[str] = field(default_factory=list)
    date: str = ""
    time: str = ""
    status: str = STATUS_DRAFT
    location: str = ""
    signature: str = ""
    signed_at: Optional[str] = None

    @classmethod
    def field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'Record':
        """Build a record from a mapping, ignoring unknown keys and defaulting missing ones."""
        known = set(cls.field_names())
        values = {k: v for k, v in (data or {}).items() if k in known}
        if TAG_LIST_FIELD in values:
            values[TAG_LIST_FIELD] = list(values[TAG_LIST_FIELD] or [])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def get(self, name: str, default: Any = None) -> Any:
        return getattr(self, name, default)

    def with_changes(self, **changes) -> 'Record':
        """Return a copy with the given fields replaced; list fields are copied."""
        updated = replace(self, **changes)
        updated.function_of_behavior = list(updated.function_of_behavior)
        return updated

    @property
    def is_finalized(self) -> bool:
        return self.status == STATUS_SIGNED


@dataclass
class StoredRecord:
    """A persisted record together with its identity and bookkeeping timestamps."""
    id: str
    record: Record
    created_at: datetime
    updated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = self.record.to_dict()
        data.update({
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        })
        return data


@dataclass(frozen=True)
class AuditEntry:
    """One accepted mutation of a persisted record. Never modified once written."""
    id: int
    record_id: str
    changes: Dict[str, Dict[str, Any]]
    actor: str
    edited_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "record_id": self.record_id,
            "changes": self.changes,
            "actor": self.actor,
            "edited_at": self.edited_at.isoformat(),
        }


def check_field_value(name: str, value: Any) -> Any:
    """Return value in its stored shape, or raise ValueError when it has the wrong type for the field."""
    if name == TAG_LIST_FIELD:
        if not isinstance(value, (list, tuple)) or not all(isinstance(item, str) for item in value):
            raise ValueError(f"{name} must be a list of strings")
        return list(value)

    # signed_at is unset until finalization
    if name == "signed_at" and value is None:
        return value

    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string")
    return value
