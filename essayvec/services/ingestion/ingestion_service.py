"""Orchestrator for one publication's ingestion run.

Stages: **discover -> extract -> chunk -> embed -> store**.

:class:`IngestionService` coordinates the collaborators without any of them
knowing about each other, and owns the run's progress stream:

    start
    progress (phase="extract")  one per article URL
    progress (phase="embed")    one per stored chunk
    complete (run summary)  or  error (message)

Discovery and per-article failures are absorbed into the
:class:`~essayvec.models.pipeline.PipelineRun` ledger.  Anything else
(quota exhaustion, store failures, unexpected errors) ends the run with an
``error`` event, stops outstanding work and propagates.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from datetime import date
from functools import partial
from typing import TYPE_CHECKING

import structlog

from essayvec.models.essay import Document, SourceDescriptor
from essayvec.models.pipeline import (
    EssaySnapshot,
    ExtractionFailure,
    PipelineConfig,
    PipelineRun,
    ProgressEvent,
    ScrapeResult,
)
from essayvec.pipeline.progress_tracker import ProgressTracker
from essayvec.services.ingestion.chunker import SentenceChunker
from essayvec.utils.concurrency import throttled_gather
from essayvec.utils.errors import EssayVecError, ExtractionError, PipelineError

if TYPE_CHECKING:
    from essayvec.interfaces.article_provider import IArticleExtractor
    from essayvec.interfaces.url_discovery import IUrlDiscovery
    from essayvec.services.ingestion.embedding_pipeline import EmbeddingPipeline

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Runs discovery, extraction, chunking and embedding for one publication.

    Parameters
    ----------
    discovery:
        Resolves the publication's article URLs.
    extractor:
        Turns one article URL into a Document.
    chunker:
        Splits Documents into token-bounded chunks.
    embedding_pipeline:
        Embeds and stores chunks.  Optional for scrape-only use.
    config:
        Run tunables (document cap, extraction concurrency).
    progress_tracker:
        Sink for progress events; a private tracker is used when omitted.
    """

    def __init__(
        self,
        discovery: IUrlDiscovery,
        extractor: IArticleExtractor,
        chunker: SentenceChunker,
        embedding_pipeline: EmbeddingPipeline | None = None,
        config: PipelineConfig | None = None,
        progress_tracker: ProgressTracker | None = None,
    ) -> None:
        self._discovery = discovery
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_pipeline = embedding_pipeline
        self._config = config or PipelineConfig()
        self._tracker = progress_tracker or ProgressTracker()

    @property
    def progress_tracker(self) -> ProgressTracker:
        return self._tracker

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, url: str, run_id: str | None = None) -> PipelineRun:
        """Ingest every reachable essay of the publication at *url*.

        Raises :class:`~essayvec.utils.errors.ConfigurationError` for an
        invalid URL before any event is published.
        """
        if self._embedding_pipeline is None:
            raise PipelineError("IngestionService.run needs an embedding pipeline")

        source = SourceDescriptor.from_url(url)
        run_id = run_id or uuid.uuid4().hex
        run = PipelineRun(author=source.writer, source_url=source.base_url)
        started = time.monotonic()

        await self._tracker.start(run_id, message=source.base_url)
        logger.info("ingestion_started", run_id=run_id, source=source.base_url, author=source.writer)

        try:
            documents = await self._collect_documents(source, run, run_id)
            chunks = [chunk for document in documents for chunk in self._chunker.chunk(document)]
            logger.info("chunking_complete", run_id=run_id, documents=len(documents), chunks=len(chunks))
            await self._embedding_pipeline.run(
                source.writer,
                chunks,
                run,
                on_progress=partial(self._tracker.publish, run_id),
            )
        except EssayVecError as exc:
            run.elapsed_seconds = round(time.monotonic() - started, 3)
            logger.error("ingestion_failed", run_id=run_id, error=str(exc), processed=run.processed_chunks)
            await self._tracker.error(run_id, str(exc))
            raise
        except Exception as exc:
            run.elapsed_seconds = round(time.monotonic() - started, 3)
            logger.exception("ingestion_unexpected_error", run_id=run_id, processed=run.processed_chunks)
            await self._tracker.error(run_id, f"Internal error: {exc}")
            raise
        except asyncio.CancelledError:
            logger.warning("ingestion_cancelled", run_id=run_id, processed=run.processed_chunks)
            await self._tracker.error(run_id, "ingestion cancelled")
            raise

        run.elapsed_seconds = round(time.monotonic() - started, 3)
        await self._tracker.complete(run_id, run)
        logger.info(
            "ingestion_complete",
            run_id=run_id,
            author=run.author,
            documents=run.documents_extracted,
            restricted=run.documents_restricted,
            extraction_failures=len(run.extraction_failures),
            processed=run.processed_chunks,
            failed=len(run.failed_chunks),
            total=run.total_chunks,
            elapsed_s=run.elapsed_seconds,
        )
        return run

    async def scrape(self, url: str, run_id: str | None = None) -> ScrapeResult:
        """Discover, extract and chunk without embedding; return a snapshot."""
        source = SourceDescriptor.from_url(url)
        run_id = run_id or uuid.uuid4().hex
        run = PipelineRun(author=source.writer, source_url=source.base_url)

        documents = await self._collect_documents(source, run, run_id)

        essays: list[EssaySnapshot] = []
        for document in documents:
            essays.append(
                EssaySnapshot(
                    title=document.title,
                    subtitle=document.subtitle,
                    url=document.url,
                    date=document.date,
                    likes=document.likes,
                    content=document.content,
                    length=len(document.content),
                    tokens=self._chunker.count_tokens(document.content),
                    chunks=self._chunker.chunk(document),
                )
            )

        result = ScrapeResult(
            current_date=date.today().isoformat(),
            author=source.writer,
            url=source.base_url,
            length=sum(e.length for e in essays),
            tokens=sum(e.tokens for e in essays),
            essays=essays,
        )
        logger.info(
            "scrape_complete",
            author=result.author,
            essays=len(essays),
            tokens=result.tokens,
            restricted=run.documents_restricted,
            extraction_failures=len(run.extraction_failures),
        )
        return result

    # ------------------------------------------------------------------
    # Discovery and extraction
    # ------------------------------------------------------------------

    async def _collect_documents(
        self,
        source: SourceDescriptor,
        run: PipelineRun,
        run_id: str,
    ) -> list[Document]:
        discovery = await self._discovery.discover(source)
        run.urls_discovered = len(discovery.urls)
        run.discovery_strategy = discovery.strategy
        run.discovery_errors = list(discovery.errors)

        urls = list(discovery.urls)
        if self._config.document_limit and len(urls) > self._config.document_limit:
            urls = urls[: self._config.document_limit]
            logger.info("document_limit_applied", limit=self._config.document_limit, discovered=run.urls_discovered)

        done = 0
        total = len(urls)

        async def _extract(article_url: str) -> Document | None:
            nonlocal done
            try:
                document = await self._extractor.extract(article_url)
            except ExtractionError as exc:
                run.extraction_failures.append(ExtractionFailure(url=article_url, error=str(exc)))
                logger.warning("article_extraction_failed", url=article_url, error=str(exc))
                document = None
            else:
                if document is None:
                    run.documents_restricted += 1
                else:
                    run.documents_extracted += 1

            done += 1
            await self._tracker.publish(
                run_id,
                ProgressEvent(
                    type="progress",
                    phase="extract",
                    current=done,
                    total=total,
                    title=document.title if document else None,
                ),
            )
            return document

        semaphore = asyncio.Semaphore(self._config.extraction_concurrency)
        results = await throttled_gather(
            [_extract(article_url) for article_url in urls],
            semaphore,
            return_exceptions=False,
        )
        return [document for document in results if document is not None]
