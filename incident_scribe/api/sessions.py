"""
Editing session endpoints.

Sessions live in this process only. Every handler is async so all session
mutations run on the server's event loop, one at a time. A session that sees
no request for SESSION_IDLE_TIMEOUT_SEC is closed and dropped; unsaved
changes in it are lost.
"""

import time

from fastapi import APIRouter, HTTPException, Header
from typing import Dict, Optional

from .schemas import (
    SessionCreateRequest,
    SessionStateResponse,
    MergeResponse,
    ProposalRequest,
    ExtractRequest,
    EditRequest,
    SessionCommitRequest,
    FinalizeRequest,
    CommitResponse,
    record_response,
    audit_response,
)
from ..agents import get_extractor
from ..core.config import get_session_idle_timeout
from ..core.session import EditingSession
from ..util.logging import logger

router = APIRouter()

_sessions: Dict[str, EditingSession] = {}
_last_seen: Dict[str, float] = {}


def _expire_idle_sessions():
    timeout = get_session_idle_timeout()
    if timeout is None:
        return

    now = time.monotonic()
    for session_id, seen in list(_last_seen.items()):
        if now - seen >= timeout:
            _drop_session(session_id)
            logger.log_operation("session.expire", "success", {"session_id": session_id, "idle_sec": round(now - seen, 1)})


def _drop_session(session_id: str):
    session = _sessions.pop(session_id, None)
    _last_seen.pop(session_id, None)
    if session is not None:
        session.close()


def _get_session(session_id: str) -> EditingSession:
    _expire_idle_sessions()
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    _last_seen[session_id] = time.monotonic()
    return session


def _state(session: EditingSession) -> SessionStateResponse:
    return SessionStateResponse(**session.state())


def _commit_response(session: EditingSession, record, entry) -> CommitResponse:
    return CommitResponse(record=record_response(session.record_id, record), audit_entry=audit_response(entry))


@router.post("", response_model=SessionStateResponse, status_code=201)
async def open_session(request: SessionCreateRequest):
    """Open an editing session on an existing record, or on a new unsaved one."""
    _expire_idle_sessions()
    extractor = get_extractor()
    if request.record_id:
        session = EditingSession.open(request.record_id, extractor=extractor)
    else:
        session = EditingSession(extractor=extractor)

    _sessions[session.session_id] = session
    _last_seen[session.session_id] = time.monotonic()
    return _state(session)


@router.get("/{session_id}", response_model=SessionStateResponse)
async def get_session(session_id: str):
    return _state(_get_session(session_id))


@router.delete("/{session_id}", status_code=204)
async def close_session(session_id: str):
    _get_session(session_id)
    _drop_session(session_id)


@router.put("/{session_id}/locks/{field}", response_model=SessionStateResponse)
async def acquire_lock(session_id: str, field: str):
    """Operator focused a field."""
    session = _get_session(session_id)
    session.acquire(field)
    return _state(session)


@router.delete("/{session_id}/locks/{field}", response_model=SessionStateResponse)
async def release_lock(session_id: str, field: str):
    """Operator left a field."""
    session = _get_session(session_id)
    session.release(field)
    return _state(session)


@router.post("/{session_id}/proposals", response_model=MergeResponse)
async def deliver_proposal(session_id: str, request: ProposalRequest):
    session = _get_session(session_id)
    changed = session.apply_proposal(request.fields)
    return MergeResponse(changed_fields=sorted(changed), state=_state(session))


@router.post("/{session_id}/extract", response_model=MergeResponse)
async def extract_narrative(session_id: str, request: ExtractRequest):
    """Run the extractor and merge its proposal. Extraction errors leave the form untouched."""
    session = _get_session(session_id)
    changed = await session.request_extraction(request.narrative)
    return MergeResponse(changed_fields=sorted(changed), state=_state(session))


@router.post("/{session_id}/edits", response_model=SessionStateResponse)
async def edit_field(session_id: str, request: EditRequest):
    session = _get_session(session_id)
    try:
        session.edit_field(request.field, request.value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _state(session)


@router.post("/{session_id}/commit", response_model=CommitResponse)
async def commit_session(session_id: str, request: SessionCommitRequest,
                         x_actor: Optional[str] = Header(default=None)):
    session = _get_session(session_id)
    record, entry = session.commit(request.actor or x_actor)
    return _commit_response(session, record, entry)


@router.post("/{session_id}/finalize", response_model=CommitResponse)
async def finalize_session(session_id: str, request: FinalizeRequest,
                           x_actor: Optional[str] = Header(default=None)):
    session = _get_session(session_id)
    record, entry = session.finalize(request.signature, request.actor or x_actor)
    return _commit_response(session, record, entry)
