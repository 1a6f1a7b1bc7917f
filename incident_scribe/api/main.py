"""
Incident API - records, edit history and editing sessions.
"""

from fastapi import FastAPI, HTTPException, Header, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from typing import Optional

from .schemas import (
    RecordCreateRequest,
    RecordUpdateRequest,
    FinalizeRequest,
    RecordResponse,
    RecordListResponse,
    HistoryResponse,
    CommitResponse,
    HealthResponse,
    ErrorResponse,
    record_response,
    audit_response,
)
from .sessions import router as sessions_router
from ..core import dao
from ..core.audit import get_history
from ..core.db import health_check
from ..core.config import VERSION, debug_enabled
from ..core.errors import (
    IncidentScribeError,
    RecordNotFoundError,
    PersistenceError,
    FinalizationError,
    AlreadyFinalizedError,
    ExtractionError,
)

app = FastAPI(
    title="Incident Scribe API",
    version=VERSION,
    description="Incident record merge-and-audit service",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000", "http://localhost:5173", "http://127.0.0.1:5173"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Most specific first
_ERROR_STATUS = (
    (RecordNotFoundError, 404),
    (AlreadyFinalizedError, 409),
    (FinalizationError, 400),
    (ExtractionError, 502),
    (PersistenceError, 503),
)


@app.exception_handler(IncidentScribeError)
async def incident_error_handler(request: Request, exc: IncidentScribeError):
    status_code = next((code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500)
    body = ErrorResponse(error_type=exc.__class__.__name__, message=str(exc))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def _resolve_actor(body_actor: Optional[str], header_actor: Optional[str]) -> Optional[str]:
    return body_actor or header_actor


@app.get("/health", response_model=HealthResponse)
def health_check_endpoint():
    """Check system health."""
    db_health = health_check()
    return HealthResponse(
        status="healthy" if db_health else "unhealthy",
        version=VERSION,
        db_health=db_health,
        record_count=dao.get_record_count()
    )


@app.post("/records", response_model=RecordResponse, status_code=201)
def create_record_endpoint(request: RecordCreateRequest):
    """Create a draft record."""
    stored = dao.create_record(request.to_update())
    return record_response(stored.id, stored.record, stored)


@app.get("/records", response_model=RecordListResponse)
def list_records_endpoint(limit: int = 100):
    return RecordListResponse(
        records=[record_response(s.id, s.record, s) for s in dao.list_records(limit)]
    )


@app.get("/records/{record_id}", response_model=RecordResponse)
def get_record_endpoint(record_id: str):
    stored = dao.get_record(record_id)
    if not stored:
        raise HTTPException(status_code=404, detail="Record not found")
    return record_response(stored.id, stored.record, stored)


@app.patch("/records/{record_id}", response_model=CommitResponse)
def update_record_endpoint(record_id: str, request: RecordUpdateRequest,
                           x_actor: Optional[str] = Header(default=None)):
    """Commit a partial update. An edit history entry is appended only if something changed."""
    actor = _resolve_actor(request.actor, x_actor)
    try:
        new, entry = dao.update_record(record_id, request.to_update(), actor)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return CommitResponse(record=record_response(record_id, new), audit_entry=audit_response(entry))


@app.post("/records/{record_id}/finalize", response_model=CommitResponse)
def finalize_record_endpoint(record_id: str, request: FinalizeRequest,
                             x_actor: Optional[str] = Header(default=None)):
    """Sign a record. Fails without changing status if persistence fails."""
    actor = _resolve_actor(request.actor, x_actor)
    new, entry = dao.finalize_record(record_id, request.signature, actor)
    return CommitResponse(record=record_response(record_id, new), audit_entry=audit_response(entry))


@app.get("/records/{record_id}/history", response_model=HistoryResponse)
def record_history_endpoint(record_id: str, limit: Optional[int] = None):
    """Edit history, most recent first."""
    if dao.get_record(record_id) is None:
        raise HTTPException(status_code=404, detail="Record not found")

    return HistoryResponse(
        record_id=record_id,
        entries=[audit_response(entry) for entry in get_history(record_id, limit)]
    )


app.include_router(sessions_router, prefix="/sessions", tags=["sessions"])
