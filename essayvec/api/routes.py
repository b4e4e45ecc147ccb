"""FastAPI routes for essay ingestion.

Endpoint                              Method  Description
/api/v1/ingest/stream?url=...         GET     Run an ingestion, stream progress as SSE
/api/v1/ingest/{run_id}/status        GET     Latest progress event of a run
/api/v1/health                        GET     Health check + provider status

The stream sends one ``data: {json}`` frame per progress event and closes
after the ``complete`` or ``error`` frame.  Services are read from
``app.state`` (populated at startup in ``essayvec.main``).
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import AsyncIterator
from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import StreamingResponse

from essayvec import __version__
from essayvec.api.schemas import HealthResponse, RunStatusResponse
from essayvec.models.essay import SourceDescriptor
from essayvec.models.pipeline import ProgressEvent
from essayvec.services.ingestion.ingestion_service import IngestionService
from essayvec.utils.errors import ConfigurationError
from essayvec.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")

_TERMINAL_EVENTS = frozenset({"complete", "error"})


def _get_ingestion_service(request: Request) -> IngestionService:
    """Return the ingestion service from application state."""
    return request.app.state.ingestion_service


def format_sse(event: ProgressEvent) -> str:
    """Serialize one event as a Server-Sent Events frame."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"


async def _stream_run(service: IngestionService, url: str, run_id: str) -> AsyncIterator[str]:
    tracker = service.progress_tracker
    queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()

    async def _on_event(_run_id: str, event: ProgressEvent) -> None:
        await queue.put(event)

    async def _runner() -> None:
        try:
            await service.run(url, run_id=run_id)
        except Exception as exc:
            # Terminal frame for failures raised before the service published one.
            _logger.info("ingest_stream_run_failed", run_id=run_id, error=str(exc))
            await queue.put(ProgressEvent(type="error", message=str(exc)))

    tracker.register_listener(run_id, _on_event)
    task = asyncio.create_task(_runner())
    try:
        while True:
            event = await queue.get()
            yield format_sse(event)
            if event.type in _TERMINAL_EVENTS:
                break
    finally:
        tracker.unregister_listener(run_id, _on_event)
        if not task.done():
            task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        _logger.info("ingest_stream_closed", run_id=run_id)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/ingest/stream", summary="Ingest a publication and stream progress")
async def ingest_stream(
    service: Annotated[IngestionService, Depends(_get_ingestion_service)],
    url: Annotated[str, Query(min_length=1, description="Publication root URL")],
) -> StreamingResponse:
    try:
        source = SourceDescriptor.from_url(url)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=exc.message) from exc

    run_id = uuid.uuid4().hex
    _logger.info("ingest_stream_opened", run_id=run_id, source=source.base_url)
    return StreamingResponse(
        _stream_run(service, url, run_id),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Run-Id": run_id},
    )


@router.get("/ingest/{run_id}/status", response_model=RunStatusResponse)
async def ingest_status(
    run_id: str,
    service: Annotated[IngestionService, Depends(_get_ingestion_service)],
) -> RunStatusResponse:
    return RunStatusResponse(run_id=run_id, status=service.progress_tracker.get_status(run_id))


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = {}
    if hasattr(request.app.state, "provider_registry"):
        providers = dict(request.app.state.provider_registry)

    status = "healthy" if providers and all(providers.values()) else "degraded"
    return HealthResponse(status=status, version=__version__, providers=providers)
