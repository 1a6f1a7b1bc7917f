"""
Base extractor interface - narrative in, proposed record out.

Extractors are additive: a field they know nothing about is simply left out
of the proposal. normalize_proposal() enforces that on raw service output.
"""

import re
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta
from typing import Any, Dict, Mapping, Optional

from ..core.schema import EXTRACTABLE_FIELDS, TAG_LIST_FIELD

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

# Keys the extraction prompt or older services may use
_KEY_ALIASES = {
    "incidentType": "incident_type",
    "functionOfBehavior": "function_of_behavior",
}


def _normalize_date(value: Any, today: date) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip().lower()
    if "today" in text or "just now" in text:
        return today.isoformat()
    if "yesterday" in text:
        return (today - timedelta(days=1)).isoformat()

    if _DATE_RE.match(text):
        return text

    try:
        return datetime.fromisoformat(value.strip()).date().isoformat()
    except ValueError:
        return None


def _normalize_time(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None

    match = _TIME_RE.match(value.strip())
    if not match:
        return None

    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return f"{hours:02d}:{minutes:02d}"


def normalize_proposal(raw: Any, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Reduce raw extractor output to a proposed record.

    Unknown keys, nulls and unparseable dates/times are dropped so they read
    as "no information". Other malformed values are passed through; the merge
    engine ignores them.
    """
    if not isinstance(raw, Mapping):
        return {}

    today = today or date.today()
    proposal: Dict[str, Any] = {}

    for key, value in raw.items():
        name = _KEY_ALIASES.get(key, key)
        if name not in EXTRACTABLE_FIELDS or value is None:
            continue

        if name == "date":
            value = _normalize_date(value, today)
        elif name == "time":
            value = _normalize_time(value)
        elif name == TAG_LIST_FIELD and isinstance(value, str):
            value = [value]

        if value is not None:
            proposal[name] = value

    return proposal


class BaseExtractor(ABC):
    """Abstract narrative-to-record extractor."""

    def __init__(self, model_name: str):
        self.model_name = model_name

    @abstractmethod
    async def extract(self, narrative: str) -> Dict[str, Any]:
        """
        Propose structured field values for a narrative.

        Raises ExtractionError when the service fails; never returns a value
        meant to clear a field.
        """

    def get_status(self) -> Dict[str, Any]:
        return {
            "extractor_type": self.__class__.__name__,
            "model_name": self.model_name,
        }
