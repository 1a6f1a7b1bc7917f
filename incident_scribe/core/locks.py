"""
Field lock tracking - which fields the operator is composing right now.

A field is locked between focus-start and focus-end on the editor surface.
The merge engine never overwrites a locked field. Locks live only as long as
the editing session and are never persisted.
"""

from typing import FrozenSet, Set


class FieldLockTracker:
    """Set of field names under direct human composition.

    acquire/release are idempotent; the tracker performs no I/O and cannot fail.
    """

    def __init__(self):
        self._locked: Set[str] = set()

    def acquire(self, field: str):
        self._locked.add(field)

    def release(self, field: str):
        self._locked.discard(field)

    def is_locked(self, field: str) -> bool:
        return field in self._locked

    def snapshot(self) -> FrozenSet[str]:
        """Current lock set by value; callers cannot reach the tracker's own set through it."""
        return frozenset(self._locked)

    def clear(self):
        """Release every lock (session end)."""
        self._locked.clear()

    def __len__(self):
        return len(self._locked)

    def __contains__(self, field: str) -> bool:
        return self.is_locked(field)
