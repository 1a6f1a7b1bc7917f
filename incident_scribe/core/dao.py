"""
Record store - incident records keyed by record id.

persist() is the single write path: it reads the stored snapshot, applies a
partial update and writes the result inside one transaction, returning both
snapshots so the change set can be computed without racing another writer.
"""

import json
import sqlite3
import uuid
from datetime import datetime
from typing import Any, List, Mapping, Optional, Tuple

from .db import get_db, init_db
from .audit import audit_log
from .errors import RecordNotFoundError, PersistenceError, FinalizationError, AlreadyFinalizedError
from .schema import Record, StoredRecord, AuditEntry, STATUS_SIGNED, VALID_STATUSES, check_field_value
from ..util.logging import logger

# Initialize database on module import
init_db()

# Fields a plain update may not touch; they change only through finalize_record
FINALIZATION_FIELDS = {"status", "signature", "signed_at"}


def _row_to_stored(row) -> StoredRecord:
    record_id, data, created_at, updated_at = row
    return StoredRecord(
        id=record_id,
        record=Record.from_dict(json.loads(data)),
        created_at=datetime.fromisoformat(created_at),
        updated_at=datetime.fromisoformat(updated_at)
    )


def _validate_update(partial_update: Mapping[str, Any]):
    known = set(Record.field_names())
    unknown = [k for k in partial_update if k not in known]
    if unknown:
        raise ValueError(f"Unknown record fields: {unknown}")

    for name, value in partial_update.items():
        check_field_value(name, value)

    status = partial_update.get("status")
    if status is not None and status not in VALID_STATUSES:
        raise ValueError(f"status must be one of: {list(VALID_STATUSES)}")


def create_record(initial: Optional[Mapping[str, Any]] = None) -> StoredRecord:
    """Create a new draft record, optionally pre-filled (e.g. from a first proposal)."""
    if isinstance(initial, Record):
        initial = initial.to_dict()
    initial = dict(initial or {})
    _validate_update(initial)
    # new records always start as unsigned drafts
    for name in FINALIZATION_FIELDS:
        initial.pop(name, None)

    record = Record.from_dict(initial)
    record_id = str(uuid.uuid4())
    now = datetime.now()

    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO incidents (id, data, status, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
                (record_id, json.dumps(record.to_dict()), record.status, now.isoformat(timespec="microseconds"), now.isoformat(timespec="microseconds"))
            )
            conn.commit()
    except sqlite3.Error as e:
        logger.log_record_operation("create", record_id, status="failed", details={"error": str(e)[:100]})
        raise PersistenceError(f"Failed to create record: {e}") from e

    logger.log_record_operation("create", record_id)
    return StoredRecord(id=record_id, record=record, created_at=now, updated_at=now)


def get_record(record_id: str) -> Optional[StoredRecord]:
    """Get a record by id."""
    if not record_id or not record_id.strip():
        return None

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, data, created_at, updated_at FROM incidents WHERE id = ?",
            (record_id.strip(),)
        )
        row = cursor.fetchone()

    return _row_to_stored(row) if row else None


def list_records(limit: int = 100) -> List[StoredRecord]:
    """List records, most recently updated first."""
    if limit <= 0:
        return []

    with get_db() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT id, data, created_at, updated_at FROM incidents ORDER BY updated_at DESC LIMIT ?",
            (limit,)
        )
        rows = cursor.fetchall()

    return [_row_to_stored(row) for row in rows]


def get_record_count() -> int:
    try:
        with get_db() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) FROM incidents")
            result = cursor.fetchone()
            return result[0] if result else 0
    except Exception as e:
        logger.error(f"Failed to count records: {e}")
        return 0


def persist(record_id: str, partial_update: Mapping[str, Any], require_draft: bool = False) -> Tuple[Record, Record]:
    """
    Apply a partial update atomically and return (old, new) snapshots.

    With require_draft, a record that is already finalized raises
    AlreadyFinalizedError inside the same transaction and nothing is written.
    """
    partial_update = dict(partial_update)
    _validate_update(partial_update)

    try:
        with get_db() as conn:
            conn.isolation_level = None
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            try:
                cursor.execute("SELECT data FROM incidents WHERE id = ?", (record_id,))
                row = cursor.fetchone()
                if not row:
                    raise RecordNotFoundError(record_id)

                old = Record.from_dict(json.loads(row[0]))
                if require_draft and old.is_finalized:
                    raise AlreadyFinalizedError(record_id)

                new = Record.from_dict({**old.to_dict(), **partial_update})

                cursor.execute(
                    "UPDATE incidents SET data = ?, status = ?, updated_at = ? WHERE id = ?",
                    (json.dumps(new.to_dict()), new.status, datetime.now().isoformat(timespec="microseconds"), record_id)
                )
                cursor.execute("COMMIT")
            except Exception:
                cursor.execute("ROLLBACK")
                raise
    except sqlite3.Error as e:
        logger.log_record_operation("persist", record_id, status="failed", details={"error": str(e)[:100]})
        raise PersistenceError(f"Failed to persist record {record_id}: {e}") from e

    logger.log_record_operation("persist", record_id, details={"fields": sorted(partial_update)})
    return old, new


def update_record(record_id: str, partial_update: Mapping[str, Any], actor: Optional[str] = None) -> Tuple[Record, Optional[AuditEntry]]:
    """Commit a partial update and append its change set to the edit history."""
    blocked = FINALIZATION_FIELDS.intersection(partial_update)
    if blocked:
        raise ValueError(f"Fields change only through finalization: {sorted(blocked)}")

    old, new = persist(record_id, partial_update)
    entry = audit_log.record(record_id, old, new, actor)
    return new, entry


def finalize_record(record_id: str, signature: str, actor: Optional[str] = None,
                    partial_update: Optional[Mapping[str, Any]] = None) -> Tuple[Record, Optional[AuditEntry]]:
    """Sign a record. Requires a non-blank signature and happens at most once per record."""
    if not signature or not signature.strip():
        raise FinalizationError("A signature is required to finalize a record")

    update = dict(partial_update or {})
    update.update({
        "status": STATUS_SIGNED,
        "signature": signature.strip(),
        "signed_at": datetime.now().isoformat(),
    })

    old, new = persist(record_id, update, require_draft=True)
    entry = audit_log.record(record_id, old, new, actor or signature.strip())
    return new, entry
