"""Unit tests for ProgressTracker."""

from __future__ import annotations

import pytest

from essayvec.models.pipeline import PipelineRun, ProgressEvent
from essayvec.pipeline.progress_tracker import ProgressTracker


class TestProgressTracker:
    @pytest.mark.asyncio
    async def test_status_pending_before_any_event(self) -> None:
        assert ProgressTracker().get_status("run-1") == {"type": "pending"}

    @pytest.mark.asyncio
    async def test_latest_event_recorded(self) -> None:
        tracker = ProgressTracker()

        await tracker.start("run-1", message="https://writer.substack.com/")
        await tracker.publish(
            "run-1",
            ProgressEvent(type="progress", current=2, total=5, title="Essay", phase="extract"),
        )

        assert tracker.get_status("run-1") == {
            "type": "progress",
            "current": 2,
            "total": 5,
            "title": "Essay",
            "phase": "extract",
        }

    @pytest.mark.asyncio
    async def test_sync_and_async_listeners_notified(self) -> None:
        tracker = ProgressTracker()
        sync_seen: list[tuple[str, str]] = []
        async_seen: list[tuple[str, str]] = []

        def sync_listener(run_id: str, event: ProgressEvent) -> None:
            sync_seen.append((run_id, event.type))

        async def async_listener(run_id: str, event: ProgressEvent) -> None:
            async_seen.append((run_id, event.type))

        tracker.register_listener("run-1", sync_listener)
        tracker.register_listener("run-1", async_listener)
        await tracker.start("run-1")
        await tracker.error("run-1", "boom")

        assert sync_seen == [("run-1", "start"), ("run-1", "error")]
        assert async_seen == sync_seen

    @pytest.mark.asyncio
    async def test_listeners_scoped_to_run(self) -> None:
        tracker = ProgressTracker()
        seen: list[str] = []
        tracker.register_listener("run-1", lambda run_id, event: seen.append(run_id))

        await tracker.start("run-2")

        assert seen == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block_others(self) -> None:
        tracker = ProgressTracker()
        seen: list[str] = []

        def broken(run_id: str, event: ProgressEvent) -> None:
            raise RuntimeError("listener bug")

        tracker.register_listener("run-1", broken)
        tracker.register_listener("run-1", lambda run_id, event: seen.append(event.type))

        await tracker.start("run-1")

        assert seen == ["start"]

    @pytest.mark.asyncio
    async def test_duplicate_registration_ignored(self) -> None:
        tracker = ProgressTracker()
        seen: list[str] = []

        def listener(run_id: str, event: ProgressEvent) -> None:
            seen.append(event.type)

        tracker.register_listener("run-1", listener)
        tracker.register_listener("run-1", listener)
        await tracker.start("run-1")

        assert seen == ["start"]

    @pytest.mark.asyncio
    async def test_unregistered_listener_not_called(self) -> None:
        tracker = ProgressTracker()
        seen: list[str] = []

        def listener(run_id: str, event: ProgressEvent) -> None:
            seen.append(event.type)

        tracker.register_listener("run-1", listener)
        tracker.unregister_listener("run-1", listener)
        await tracker.start("run-1")

        assert seen == []

    @pytest.mark.asyncio
    async def test_complete_carries_run_summary(self) -> None:
        tracker = ProgressTracker()
        run = PipelineRun(author="writer", total_chunks=3, processed_chunks=3)

        await tracker.complete("run-1", run)

        status = tracker.get_status("run-1")
        assert status["type"] == "complete"
        assert status["result"]["author"] == "writer"
        assert status["result"]["processed_chunks"] == 3
        assert status["result"]["failed_chunks"] == []

    @pytest.mark.asyncio
    async def test_terminal_status_kept_after_run(self) -> None:
        tracker = ProgressTracker()
        seen: list[str] = []

        def listener(run_id: str, event: ProgressEvent) -> None:
            seen.append(event.type)

        tracker.register_listener("run-1", listener)
        await tracker.error("run-1", "quota exhausted")
        tracker.unregister_listener("run-1", listener)

        assert seen == ["error"]
        assert tracker.get_status("run-1") == {"type": "error", "message": "quota exhausted"}

    @pytest.mark.asyncio
    async def test_oldest_runs_evicted_past_capacity(self) -> None:
        tracker = ProgressTracker(max_runs=2)

        await tracker.start("run-1")
        await tracker.start("run-2")
        await tracker.start("run-1")
        await tracker.start("run-3")

        assert tracker.get_status("run-1") == {"type": "start"}
        assert tracker.get_status("run-2") == {"type": "pending"}
        assert tracker.get_status("run-3") == {"type": "start"}

    def test_rejects_invalid_capacity(self) -> None:
        with pytest.raises(ValueError):
            ProgressTracker(max_runs=0)
