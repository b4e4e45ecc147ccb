"""Run progress tracking with callback-based listener notification.

Stores the latest :class:`~essayvec.models.pipeline.ProgressEvent` for each
ingestion run and broadcasts every event to the listeners registered for
that run.  Listeners are keyed by run ID so several runs can stream at once
without cross-talk.

    IngestionService --publish()--> ProgressTracker --callback()--> SSE stream
                                                    --callback()--> CLI log

Delivery is best-effort: a listener that raises is logged and skipped, and
nothing a listener does can fail the run that published the event.

The latest event of the ``max_runs`` most recently active runs is kept, so a
finished run still reports its ``complete`` or ``error`` status.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from collections.abc import Callable
from typing import Any

import structlog

from essayvec.models.pipeline import PipelineRun, ProgressEvent
from essayvec.utils.logging import get_logger


class ProgressTracker:
    """Records and broadcasts run progress via callbacks.

    Callbacks may be sync or async and are called as
    ``callback(run_id, event)``.
    """

    def __init__(self, max_runs: int = 500) -> None:
        if max_runs < 1:
            raise ValueError(f"max_runs must be >= 1, got {max_runs}")
        self._max_runs = max_runs
        self._latest: OrderedDict[str, ProgressEvent] = OrderedDict()
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Publishing
    # ------------------------------------------------------------------

    async def publish(self, run_id: str, event: ProgressEvent) -> None:
        """Record *event* as the run's latest state and notify listeners."""
        self._latest[run_id] = event
        self._latest.move_to_end(run_id)
        while len(self._latest) > self._max_runs:
            self._latest.popitem(last=False)
        self._logger.debug(
            "progress_event",
            run_id=run_id,
            type=event.type,
            phase=event.phase,
            current=event.current,
            total=event.total,
        )
        await self._notify_listeners(run_id, event)

    async def start(self, run_id: str, message: str | None = None) -> None:
        await self.publish(run_id, ProgressEvent(type="start", message=message))

    async def complete(self, run_id: str, run: PipelineRun) -> None:
        await self.publish(run_id, ProgressEvent(type="complete", result=run.model_dump(mode="json")))

    async def error(self, run_id: str, message: str) -> None:
        await self.publish(run_id, ProgressEvent(type="error", message=message))

    # ------------------------------------------------------------------
    # Listener registry
    # ------------------------------------------------------------------

    def register_listener(self, run_id: str, callback: Callable) -> None:
        """Register *callback* to receive events for *run_id*."""
        listeners = self._listeners.setdefault(run_id, [])
        if callback not in listeners:
            listeners.append(callback)
            self._logger.debug("listener_registered", run_id=run_id, total_listeners=len(listeners))

    def unregister_listener(self, run_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(run_id, [])
        if callback in listeners:
            listeners.remove(callback)
            self._logger.debug("listener_unregistered", run_id=run_id, remaining_listeners=len(listeners))
        if not listeners:
            self._listeners.pop(run_id, None)

    def get_status(self, run_id: str) -> dict[str, Any]:
        """Return the latest event for *run_id* as a dict.

        A run that has published nothing yet reports ``{"type": "pending"}``.
        """
        event = self._latest.get(run_id)
        if event is None:
            return {"type": "pending"}
        return event.model_dump(exclude_none=True)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _notify_listeners(self, run_id: str, event: ProgressEvent) -> None:
        for callback in list(self._listeners.get(run_id, [])):
            try:
                result = callback(run_id, event)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    run_id=run_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
