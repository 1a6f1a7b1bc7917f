"""
Append-only edit history for persisted records.

Every accepted mutation with a non-empty change set appends one entry
attributed to the actor who made it. No-op writes append nothing.

Audit writes are fire-and-forget: if the history insert fails the failure is
logged and swallowed, and the record mutation that triggered it stands.
"""

import json
from datetime import datetime
from typing import Any, Iterator, List, Optional

from .db import get_db, init_db
from .differ import diff, Snapshot
from .config import is_audit_enabled, DEFAULT_ACTOR
from .schema import AuditEntry
from ..util.logging import logger

# Initialize database on module import
init_db()


class AuditHistory:
    """Most-recent-first entries for one record.

    Lazy and restartable: every iteration runs a fresh query, so entries
    appended between iterations show up on the next pass.
    """

    def __init__(self, store: 'AuditLogStore', record_id: str, limit: Optional[int] = None):
        self._store = store
        self.record_id = record_id
        self.limit = limit

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(self._store._fetch(self.record_id, self.limit))

    def __len__(self) -> int:
        count = self._store._count(self.record_id)
        return min(count, self.limit) if self.limit is not None else count

    def to_list(self) -> List[AuditEntry]:
        return list(self)


class AuditLogStore:
    """Diff-and-append audit log backed by the incident_edit_history table."""

    def record(self, record_id: str, old: Snapshot, new: Snapshot, actor: Optional[str] = None) -> Optional[AuditEntry]:
        """Append an entry for the change from old to new; returns None when nothing was written."""
        changes = diff(old, new)
        if not changes:
            return None

        actor = (actor or "").strip() or DEFAULT_ACTOR
        changed_fields = list(changes)

        if not is_audit_enabled():
            logger.log_audit_write(record_id, actor, changed_fields, status="skipped", details={"reason": "AUDIT_ENABLED=false"})
            return None

        edited_at = datetime.now()
        try:
            with get_db() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "INSERT INTO incident_edit_history (incident_id, changes, edited_by_name, edited_at) VALUES (?, ?, ?, ?)",
                    (record_id, json.dumps(changes, default=str), actor, edited_at.isoformat(timespec="microseconds"))
                )
                conn.commit()
                entry_id = cursor.lastrowid
        except Exception as e:
            # The triggering mutation is not rolled back; the entry is lost.
            logger.log_audit_write(record_id, actor, changed_fields, status="failed", details={"error": str(e)[:100]})
            return None

        logger.log_audit_write(record_id, actor, changed_fields)
        return AuditEntry(
            id=entry_id,
            record_id=record_id,
            changes=changes,
            actor=actor,
            edited_at=edited_at
        )

    def history(self, record_id: str, limit: Optional[int] = None) -> AuditHistory:
        return AuditHistory(self, record_id, limit)

    def _fetch(self, record_id: str, limit: Optional[int]) -> List[AuditEntry]:
        if limit is not None and limit <= 0:
            return []

        query = '''
            SELECT id, incident_id, changes, edited_by_name, edited_at
            FROM incident_edit_history
            WHERE incident_id = ?
            ORDER BY id DESC
        '''
        params: List[Any] = [record_id]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        try:
            with get_db() as conn:
                cursor = conn.cursor()
                cursor.execute(query, params)
                rows = cursor.fetchall()
        except Exception as e:
            logger.error(f"Failed to read edit history for record '{record_id}': {e}")
            return []

        entries = []
        for entry_id, incident_id, changes, actor, edited_at in rows:
            try:
                parsed_changes = json.loads(changes) if changes else {}
            except (json.JSONDecodeError, ValueError):
                parsed_changes = {"raw_data": changes}

            entries.append(AuditEntry(
                id=entry_id,
                record_id=incident_id,
                changes=parsed_changes,
                actor=actor,
                edited_at=datetime.fromisoformat(edited_at)
            ))
        return entries

    def _count(self, record_id: str) -> int:
        try:
            with get_db() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT COUNT(*) FROM incident_edit_history WHERE incident_id = ?", (record_id,))
                result = cursor.fetchone()
                return result[0] if result else 0
        except Exception as e:
            logger.error(f"Failed to count edit history for record '{record_id}': {e}")
            return 0


# Global audit log instance
audit_log = AuditLogStore()


def record_change(record_id: str, old: Snapshot, new: Snapshot, actor: Optional[str] = None) -> Optional[AuditEntry]:
    """Append an audit entry if old and new differ."""
    return audit_log.record(record_id, old, new, actor)


def get_history(record_id: str, limit: Optional[int] = None) -> AuditHistory:
    """Edit history for a record, most recent first."""
    return audit_log.history(record_id, limit)
