"""
Merge engine - reconciles an extractor proposal against the live record.

Precedence, per field:
  1. locked by the operator -> keep the live value, never reported as changed
  2. proposal carries a meaningful value that differs from live -> adopt it
  3. otherwise -> keep the live value

The extractor only adds information. An absent, blank, empty or fallback
value is "no new information" and can never regress a field. Values of the
wrong shape are treated the same way.
"""

from typing import AbstractSet, Any, FrozenSet, Mapping, Optional, Tuple, Union

from .schema import (
    Record,
    TEXT_FIELDS,
    TAG_FIELD,
    TAG_LIST_FIELD,
    EXTRACTABLE_FIELDS,
    FALLBACK_INCIDENT_TYPE,
)

_MISSING = object()


def _text_value(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _tag_value(value: Any) -> Optional[str]:
    text = _text_value(value)
    if text is None or text.strip() == FALLBACK_INCIDENT_TYPE:
        return None
    return text


def _tag_list_value(value: Any) -> Optional[list]:
    if not isinstance(value, (list, tuple)) or not value:
        return None
    if not all(isinstance(item, str) and item.strip() for item in value):
        return None
    return list(value)


def meaningful_value(field: str, value: Any) -> Any:
    """Return the adoptable form of a proposed value, or _MISSING when it carries no information."""
    if value is None:
        return _MISSING

    if field == TAG_FIELD:
        result = _tag_value(value)
    elif field == TAG_LIST_FIELD:
        result = _tag_list_value(value)
    elif field in TEXT_FIELDS:
        result = _text_value(value)
    else:
        result = None

    return _MISSING if result is None else result


def is_meaningful(field: str, value: Any) -> bool:
    return meaningful_value(field, value) is not _MISSING


def merge(live: Record,
          proposed: Union[Mapping[str, Any], Record, None],
          locks: AbstractSet[str]) -> Tuple[Record, FrozenSet[str]]:
    """
    Reconcile a proposed record against the live record.

    Pure: neither input is mutated. Returns the new live record and the set of
    fields whose value was actually replaced.
    """
    if isinstance(proposed, Record):
        proposed = proposed.to_dict()
    if not isinstance(proposed, Mapping):
        # a malformed proposal degrades to "no change"
        proposed = {}

    updates = {}
    for field in EXTRACTABLE_FIELDS:
        if field in locks:
            continue

        candidate = meaningful_value(field, proposed.get(field))
        if candidate is _MISSING:
            continue

        if candidate != live.get(field):
            updates[field] = candidate

    merged = live.with_changes(**updates)
    return merged, frozenset(updates)
