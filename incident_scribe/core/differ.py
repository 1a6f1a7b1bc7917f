"""
Field-level change sets between two record snapshots.

Snapshots may be Record objects or plain mappings as returned by a store.
Mappings are read against the record defaults, so a snapshot without a
status reads as a draft. Sequence comparison is order-sensitive: reordering
the behaviour function tags is a change.
"""

import json
from typing import Any, Dict, List, Mapping, Union

from .schema import Record, StoredRecord

ChangeSet = Dict[str, Dict[str, Any]]
Snapshot = Union[Record, StoredRecord, Mapping[str, Any], None]

# Bookkeeping columns that change on every write and are not record content
IGNORED_FIELDS = {"id", "created_at", "updated_at"}


def _normalise(snapshot: Snapshot) -> Dict[str, Any]:
    if isinstance(snapshot, StoredRecord):
        snapshot = snapshot.record
    if isinstance(snapshot, Record):
        return snapshot.to_dict()

    data = Record().to_dict()
    if snapshot:
        data.update(snapshot)
    for name in IGNORED_FIELDS:
        data.pop(name, None)
    return data


def canonical_repr(value: Any) -> str:
    """Canonical string form used when structural comparison is impossible."""
    try:
        return json.dumps(value, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return repr(value)


def values_differ(old: Any, new: Any) -> bool:
    try:
        return bool(old != new)
    except Exception:
        # non-comparable values (e.g. ambiguous truth value)
        return canonical_repr(old) != canonical_repr(new)


def _snapshot_value(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple)) else value


def diff(old: Snapshot, new: Snapshot) -> ChangeSet:
    """Return {field: {"old": ..., "new": ...}} for every field whose value differs."""
    before = _normalise(old)
    after = _normalise(new)

    names: List[str] = list(before)
    names.extend(name for name in after if name not in before)

    changes: ChangeSet = {}
    for name in names:
        old_value = before.get(name)
        new_value = after.get(name)
        if values_differ(old_value, new_value):
            changes[name] = {
                "old": _snapshot_value(old_value),
                "new": _snapshot_value(new_value),
            }

    return changes
