"""
consultation_api.py -- FastAPI application for I Ching consultations.

Runs on ENGINE_PORT (default 3002).
Interpretations come from the LLM when available and from the
deterministic fallback otherwise; LLM trouble never fails a request.
Consultations are archived, never deleted.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from iching.catalog import entry_of, trigrams_of
from iching.daily import daily_hexagram, local_date
from iching.errors import ConsultationError, HexagramRangeError, InputValidationError, PersistenceError
from iching.models import Consultation, ConsultationUpdate, StoredConsultation

from engine import config
from engine.llm_client import AnthropicLLMClient
from engine.orchestrator import ConsultationOrchestrator
from engine.persistence import InMemoryConsultationStore, VaultConsultationStore

config.configure_logging()
logger = logging.getLogger("consultation_api")


class _CamelRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateConsultationRequest(_CamelRequest):
    """Request body for POST /consultations."""
    question: str = Field(..., description="The question put to the I Ching")
    user_id: str = Field(..., description="Id of the consulting user")
    hexagram: Optional[dict[str, Any]] = Field(
        default=None, description="Hexagram already cast by the client; cast server-side if absent",
    )
    metadata: Optional[dict[str, Any]] = None


class UpdateConsultationRequest(_CamelRequest):
    """Request body for PATCH /consultations/{id}."""
    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[str] = None


class EngineResponse(BaseModel):
    """Standard engine API response envelope."""
    success: bool
    data: Any = None
    error: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    success: bool
    version: str = "0.1.0"


orchestrator: ConsultationOrchestrator | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage LLM client, store and orchestrator lifecycle."""
    global orchestrator
    llm_client = AnthropicLLMClient()
    if config.STORE_URL:
        store: Any = VaultConsultationStore(config.STORE_URL)
    else:
        logger.warning("STORE_URL not set -- consultations kept in memory only")
        store = InMemoryConsultationStore()
    orchestrator = ConsultationOrchestrator(llm_client=llm_client, store=store)
    logger.info(
        "Consultation engine started (store=%s, models=%s/%s)",
        config.STORE_URL or "memory", config.CHEAP_MODEL, config.EXPENSIVE_MODEL,
    )
    yield
    await llm_client.aclose()
    if isinstance(store, VaultConsultationStore):
        await store.aclose()
    logger.info("Consultation engine shut down")


app = FastAPI(
    title="I Ching Consultation Engine",
    description="Coin-cast hexagrams with cost-aware AI interpretation",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Store outages on read, update and archive surface as 502, like failed creation."""
    logger.error("Store error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": f"Consultation store unavailable: {exc}"})


def get_orchestrator() -> ConsultationOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Engine not started")
    return orchestrator


def _dump(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


def _consultation_or_404(stored: Optional[StoredConsultation], consultation_id: str) -> dict[str, Any]:
    if stored is None:
        raise HTTPException(status_code=404, detail=f"Consultation {consultation_id} not found")
    return _dump(Consultation.from_stored(stored))


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(success=True)


@app.get("/hexagrams/{number}", response_model=EngineResponse)
async def get_hexagram(number: int) -> EngineResponse:
    """Catalog entry for a King Wen number."""
    try:
        entry = entry_of(number)
    except HexagramRangeError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    lower, upper = trigrams_of(number)
    return EngineResponse(
        success=True,
        data={
            "number": entry.number,
            "name": entry.name,
            "chinese": entry.chinese,
            "keywords": list(entry.keywords),
            "lowerTrigram": lower,
            "upperTrigram": upper,
        },
    )


@app.get("/daily", response_model=EngineResponse)
async def get_daily(tz: str = Query(default="UTC")) -> EngineResponse:
    """Hexagram of the day for a timezone."""
    try:
        day = local_date(tz)
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    hexagram = daily_hexagram(day)
    return EngineResponse(success=True, data={"date": day.isoformat(), "timezone": tz, "hexagram": _dump(hexagram)})


@app.post("/consultations", response_model=EngineResponse)
async def create_consultation(
    body: CreateConsultationRequest,
    engine: ConsultationOrchestrator = Depends(get_orchestrator),
) -> EngineResponse:
    """Cast (or accept) a hexagram, interpret it and store the consultation."""
    try:
        result = await engine.create_consultation(
            question=body.question,
            user_id=body.user_id,
            hexagram=body.hexagram,
            metadata=body.metadata,
        )
    except InputValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except ConsultationError as exc:
        logger.error("Consultation failed for user %s: %s", body.user_id, exc)
        raise HTTPException(status_code=502, detail=str(exc))
    return EngineResponse(success=True, data=_dump(result))


@app.get("/consultations/{consultation_id}", response_model=EngineResponse)
async def get_consultation(
    consultation_id: str,
    engine: ConsultationOrchestrator = Depends(get_orchestrator),
) -> EngineResponse:
    stored = await engine.store.fetch_by_id(consultation_id)
    return EngineResponse(success=True, data=_consultation_or_404(stored, consultation_id))


@app.get("/users/{user_id}/consultations", response_model=EngineResponse)
async def list_consultations(
    user_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    q: Optional[str] = None,
    engine: ConsultationOrchestrator = Depends(get_orchestrator),
) -> EngineResponse:
    """Newest-first history for a user, optionally filtered by question text."""
    if q:
        rows = await engine.store.search(user_id, q, limit=limit)
    else:
        rows = await engine.store.fetch_by_user(user_id, limit=limit)
    consultations = [_dump(Consultation.from_stored(row)) for row in rows]
    return EngineResponse(success=True, data={"consultations": consultations, "total": len(consultations)})


@app.get("/users/{user_id}/stats", response_model=EngineResponse)
async def consultation_stats(
    user_id: str,
    engine: ConsultationOrchestrator = Depends(get_orchestrator),
) -> EngineResponse:
    stats = await engine.store.stats(user_id)
    return EngineResponse(success=True, data=stats.model_dump(mode="json"))


@app.patch("/consultations/{consultation_id}", response_model=EngineResponse)
async def update_consultation(
    consultation_id: str,
    body: UpdateConsultationRequest,
    engine: ConsultationOrchestrator = Depends(get_orchestrator),
) -> EngineResponse:
    """Change notes, tags or status."""
    if body.status is not None and body.status not in ("active", "archived"):
        raise HTTPException(status_code=400, detail=f"Unknown status: {body.status}")
    changes = ConsultationUpdate(notes=body.notes, tags=body.tags, status=body.status)
    stored = await engine.store.update(consultation_id, changes)
    return EngineResponse(success=True, data=_consultation_or_404(stored, consultation_id))


@app.delete("/consultations/{consultation_id}", response_model=EngineResponse)
async def archive_consultation(
    consultation_id: str,
    engine: ConsultationOrchestrator = Depends(get_orchestrator),
) -> EngineResponse:
    """Soft delete: the consultation is archived, not removed."""
    stored = await engine.store.archive(consultation_id)
    return EngineResponse(success=True, data=_consultation_or_404(stored, consultation_id))


@app.get("/costs", response_model=EngineResponse)
async def get_costs(engine: ConsultationOrchestrator = Depends(get_orchestrator)) -> EngineResponse:
    """Estimated LLM spend since process start."""
    tracker = engine.cost_tracker
    return EngineResponse(
        success=True,
        data={
            "totalCost": tracker.get_total_cost(),
            "averageCost": tracker.get_average_cost(),
            "consultations": tracker.count,
        },
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("engine.consultation_api:app", host="0.0.0.0", port=config.ENGINE_PORT, reload=True)
