"""
Editing session - the single owner of one live record.

The session runs on one event loop. Lock changes, proposal deliveries and
human edits are plain synchronous calls dispatched from that loop, so they
are serialised by the loop itself and need no mutual exclusion. The only
suspension point is the extractor round trip in request_extraction().

Overlapping extraction requests are neither cancelled nor sequenced: each
delivery is merged in arrival order, so a slow, older request can overwrite a
field a newer one already filled. Such deliveries are logged as out of order.
"""

import asyncio
import uuid
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from . import dao
from .config import get_extraction_timeout
from .errors import ExtractionError, FinalizationError, RecordNotFoundError
from .highlight import HighlightCoordinator
from .locks import FieldLockTracker
from .merge import merge
from .schema import Record, AuditEntry, StoredRecord, check_field_value
from ..util.logging import logger

# Fields the operator may type into directly
EDITABLE_FIELDS = frozenset(Record.field_names()) - dao.FINALIZATION_FIELDS


class EditingSession:
    def __init__(self, record_id: Optional[str] = None, record: Optional[Record] = None,
                 extractor=None, highlights: Optional[HighlightCoordinator] = None,
                 session_id: Optional[str] = None):
        self.session_id = session_id or str(uuid.uuid4())
        self.record_id = record_id
        self.extractor = extractor
        self.locks = FieldLockTracker()
        self.highlights = highlights or HighlightCoordinator()

        self._live = record.with_changes() if record is not None else Record()
        self._dirty = False
        self._request_seq = 0
        self._last_delivered_seq = 0

    @classmethod
    def open(cls, record_id: str, extractor=None, **kwargs) -> 'EditingSession':
        """Start a session on a persisted record."""
        stored = dao.get_record(record_id)
        if stored is None:
            raise RecordNotFoundError(record_id)
        return cls(record_id=record_id, record=stored.record, extractor=extractor, **kwargs)

    @property
    def live(self) -> Record:
        """Copy of the live record."""
        return self._live.with_changes()

    @property
    def dirty(self) -> bool:
        """True when the live record holds changes not yet committed."""
        return self._dirty

    # Focus/blur from the editor surface

    def acquire(self, field: str):
        self.locks.acquire(field)
        logger.log_lock_change(self.session_id, field, "acquire")

    def release(self, field: str):
        self.locks.release(field)
        logger.log_lock_change(self.session_id, field, "release")

    # Mutations

    def apply_proposal(self, proposed: Mapping[str, Any]) -> FrozenSet[str]:
        """Merge one extractor delivery into the live record; returns the fields overwritten."""
        locked = self.locks.snapshot()
        merged, changed = merge(self._live, proposed, locked)

        self._live = merged
        if changed:
            self._dirty = True
        self.highlights.on_merge(changed)

        logger.log_merge(self.session_id, changed, locked)
        return changed

    def edit_field(self, field: str, value: Any):
        """Direct human edit of one field; raises ValueError for a reserved field or a wrongly typed value."""
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Field is not editable: {field}")
        value = check_field_value(field, value)

        self._live = self._live.with_changes(**{field: value})
        self._dirty = True

    async def request_extraction(self, narrative: str) -> FrozenSet[str]:
        """Run the extractor on the narrative and merge its proposal when it arrives."""
        if self.extractor is None:
            raise ExtractionError("No extractor configured for this session")

        self._request_seq += 1
        seq = self._request_seq
        timeout = get_extraction_timeout()

        try:
            if timeout:
                proposed = await asyncio.wait_for(self.extractor.extract(narrative), timeout)
            else:
                proposed = await self.extractor.extract(narrative)
        except asyncio.TimeoutError as e:
            logger.log_extraction(self.session_id, seq, status="failed", details={"error": f"timed out after {timeout}s"})
            raise ExtractionError(f"Extraction timed out after {timeout}s") from e
        except ExtractionError as e:
            logger.log_extraction(self.session_id, seq, status="failed", details={"error": str(e)[:100]})
            raise
        except Exception as e:
            logger.log_extraction(self.session_id, seq, status="failed", details={"error": str(e)[:100]})
            raise ExtractionError(f"Extraction failed: {e}") from e

        if seq < self._last_delivered_seq:
            logger.log_extraction(self.session_id, seq, status="out_of_order",
                                  details={"newest_delivered_seq": self._last_delivered_seq})
        else:
            logger.log_extraction(self.session_id, seq)
        self._last_delivered_seq = max(self._last_delivered_seq, seq)

        return self.apply_proposal(proposed)

    # Persistence

    def _content(self) -> Dict[str, Any]:
        data = self._live.to_dict()
        for name in dao.FINALIZATION_FIELDS:
            data.pop(name, None)
        return data

    def commit(self, actor: Optional[str] = None) -> Tuple[Record, Optional[AuditEntry]]:
        """Persist the live record; appends an audit entry when the stored record changed."""
        if self.record_id is None:
            stored: StoredRecord = dao.create_record(self._content())
            self.record_id = stored.id
            new, entry = stored.record, None
        else:
            new, entry = dao.update_record(self.record_id, self._content(), actor)

        self._live = new.with_changes()
        self._dirty = False
        return new, entry

    def finalize(self, signature: str, actor: Optional[str] = None) -> Tuple[Record, Optional[AuditEntry]]:
        """Commit and sign. On any failure the live record keeps its draft status."""
        if not signature or not signature.strip():
            raise FinalizationError("A signature is required to finalize a record")

        if self.record_id is None:
            self.commit(actor)

        new, entry = dao.finalize_record(self.record_id, signature, actor, partial_update=self._content())
        self._live = new.with_changes()
        self._dirty = False
        return new, entry

    def close(self):
        """End the session; every lock is released."""
        self.locks.clear()

    def state(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "record_id": self.record_id,
            "record": self._live.to_dict(),
            "locked_fields": sorted(self.locks.snapshot()),
            "highlighted_fields": sorted(self.highlights.current()),
            "dirty": self._dirty,
        }
