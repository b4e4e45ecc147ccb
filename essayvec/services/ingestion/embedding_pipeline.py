"""Concurrent, rate-limited conversion of chunks into stored embeddings.

Every chunk becomes one task.  A task:

1. waits for the :class:`~essayvec.utils.concurrency.DispatchLimiter`
   (at most N calls in flight, dispatch starts spaced by the pacing
   interval),
2. calls the embedding provider, retrying through
   :func:`~essayvec.utils.retry.retry_async` on transient failures,
3. turns the vector into an :class:`~essayvec.models.rag.EmbeddingRecord`
   and appends it to the shared write buffer.

The buffer is flushed through the store every ``upsert_batch_size`` records
and once more at the end.  The author's previous records are cleared right
before the first flush, so a run that embeds nothing leaves the store alone.

A chunk that keeps failing past its retry ceiling goes to the run's
failed-chunk ledger and the other chunks carry on.  Anything else is fatal:
quota exhaustion, store failures and unexpected errors mark the run aborted,
no further calls are dispatched, pending tasks are cancelled, unflushed
records are dropped and the error propagates to the caller.

One ``embed`` progress event is emitted per persisted record.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

import structlog

from essayvec.interfaces.embedding_provider import IEmbeddingProvider
from essayvec.interfaces.embedding_store import IEmbeddingStore
from essayvec.models.pipeline import PipelineConfig, PipelineRun, ProgressEvent
from essayvec.models.rag import Chunk, EmbeddingRecord
from essayvec.utils.concurrency import DispatchLimiter
from essayvec.utils.retry import RetriesExhausted, RetryPolicy, retry_async

logger = structlog.get_logger(logger_name=__name__)

ProgressCallback = Callable[[ProgressEvent], Awaitable[None]]


class _Aborted(Exception):
    """Internal signal: the run was aborted before this chunk dispatched."""


@dataclass
class _RunState:
    author: str
    run: PipelineRun
    on_progress: ProgressCallback | None
    buffer: list[EmbeddingRecord] = field(default_factory=list)
    write_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    cleared: bool = False
    aborted: bool = False


class EmbeddingPipeline:
    """Embeds chunks under a concurrency cap and pacing interval, then stores them.

    Parameters
    ----------
    embedding_provider:
        Service that turns text into vectors.
    store:
        Destination for the resulting records.
    config:
        Run tunables; defaults to :class:`PipelineConfig` defaults.
    limiter:
        Optional pre-built limiter (tests inject one with a fake clock).
    sleep:
        Coroutine used for retry backoff waits (tests inject a fake).
    """

    def __init__(
        self,
        embedding_provider: IEmbeddingProvider,
        store: IEmbeddingStore,
        config: PipelineConfig | None = None,
        *,
        limiter: DispatchLimiter | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        self._provider = embedding_provider
        self._store = store
        self._config = config or PipelineConfig()
        self._limiter = limiter or DispatchLimiter(
            max_concurrent=self._config.max_concurrent_embeddings,
            min_interval=self._config.dispatch_interval,
        )
        self._policy = RetryPolicy(
            max_retries=self._config.max_retries,
            rate_limit_max_retries=self._config.rate_limit_max_retries,
            base_delay=self._config.retry_base_delay,
            multiplier=self._config.retry_multiplier,
            max_delay=self._config.retry_max_delay,
        )
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        author: str,
        chunks: list[Chunk],
        run: PipelineRun | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> PipelineRun:
        """Embed and store *chunks* for *author*, returning the updated ledger.

        Raises
        ------
        QuotaExhaustedError
            The embedding account ran out of quota.
        PersistenceError
            The store rejected a clear or upsert.

        Any other exception from a chunk task aborts the run the same way.
        """
        run = run or PipelineRun(author=author)
        run.total_chunks = len(chunks)
        if not chunks:
            return run

        state = _RunState(author=author, run=run, on_progress=on_progress)
        tasks = [asyncio.create_task(self._process(chunk, state)) for chunk in chunks]

        logger.info(
            "embedding_started",
            author=author,
            chunks=len(chunks),
            max_concurrent=self._limiter.max_concurrent,
            interval_s=self._limiter.min_interval,
        )

        try:
            await asyncio.gather(*tasks)
            async with state.write_lock:
                await self._flush(state)
        except asyncio.CancelledError:
            state.aborted = True
            await self._cancel(tasks)
            state.buffer.clear()
            logger.warning("embedding_cancelled", author=author, processed=run.processed_chunks)
            raise
        except Exception as exc:
            state.aborted = True
            await self._cancel(tasks)
            dropped = len(state.buffer)
            state.buffer.clear()
            logger.error(
                "embedding_aborted",
                author=author,
                error=str(exc),
                error_type=type(exc).__name__,
                processed=run.processed_chunks,
                dropped_unflushed=dropped,
            )
            raise

        logger.info(
            "embedding_complete",
            author=author,
            processed=run.processed_chunks,
            failed=len(run.failed_chunks),
            total=run.total_chunks,
        )
        return run

    # ------------------------------------------------------------------
    # Per-chunk work
    # ------------------------------------------------------------------

    async def _process(self, chunk: Chunk, state: _RunState) -> None:
        async def attempt() -> list[float]:
            if state.aborted:
                raise _Aborted()
            async with self._limiter.slot():
                if state.aborted:
                    raise _Aborted()
                return await self._provider.embed_single(chunk.content)

        try:
            vector, attempts = await retry_async(
                attempt,
                self._policy,
                sleep=self._sleep,
                description=f"{chunk.essay_url}#{chunk.chunk_index}",
            )
        except _Aborted:
            return
        except RetriesExhausted as exc:
            state.run.record_failed_chunk(chunk, str(exc.last_error), exc.attempts)
            logger.warning(
                "chunk_failed",
                essay_url=chunk.essay_url,
                chunk_index=chunk.chunk_index,
                attempts=exc.attempts,
                error=str(exc.last_error),
            )
            return
        except Exception:
            state.aborted = True
            raise

        record = EmbeddingRecord.from_chunk(chunk, author=state.author, embedding=vector)
        logger.debug("chunk_embedded", essay_url=chunk.essay_url, chunk_index=chunk.chunk_index, attempts=attempts)

        async with state.write_lock:
            if state.aborted:
                return
            state.buffer.append(record)
            if len(state.buffer) >= self._config.upsert_batch_size:
                await self._flush(state)

    async def _flush(self, state: _RunState) -> None:
        """Write the buffered records; the caller holds ``state.write_lock``."""
        if not state.buffer or state.aborted:
            return

        batch = state.buffer
        state.buffer = []
        try:
            if not state.cleared:
                deleted = await self._store.clear(state.author)
                state.cleared = True
                logger.info("author_cleared", author=state.author, deleted=deleted)
            await self._store.upsert(batch)
        except Exception:
            state.aborted = True
            raise

        for record in batch:
            state.run.processed_chunks += 1
            await self._emit(
                state,
                ProgressEvent(
                    type="progress",
                    phase="embed",
                    current=state.run.processed_chunks,
                    total=state.run.total_chunks,
                    title=record.essay_title,
                ),
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _emit(state: _RunState, event: ProgressEvent) -> None:
        if state.on_progress is None:
            return
        try:
            await state.on_progress(event)
        except Exception as exc:
            logger.warning("progress_emit_failed", error=str(exc))

    @staticmethod
    async def _cancel(tasks: list[asyncio.Task]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
