"""Run-level models: configuration, the run ledger, and progress events.

:class:`PipelineConfig` is the explicit configuration struct handed to the
pipeline at construction time.  :class:`PipelineRun` is the in-memory ledger
of one ingestion invocation; it is mutated while the run progresses and is
never persisted.  :class:`ProgressEvent` is what the progress sink pushes to
callers.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from essayvec.models.essay import Document
from essayvec.models.rag import Chunk

DEFAULT_URL_DENYLIST: tuple[str, ...] = ("about", "archive", "podcast")


class PipelineConfig(BaseModel):
    """Tunables for one pipeline run.  Credentials are not part of this."""

    model_config = ConfigDict(frozen=True)

    chunk_token_budget: int = Field(default=200, ge=1)
    token_encoding: str = "cl100k_base"
    max_concurrent_embeddings: int = Field(default=3, ge=1)
    dispatch_interval: float = Field(default=0.5, ge=0.0, description="Seconds between dispatch starts.")
    max_retries: int = Field(default=3, ge=0)
    rate_limit_max_retries: int = Field(default=8, ge=0)
    retry_base_delay: float = Field(default=1.0, ge=0.0)
    retry_multiplier: float = Field(default=2.0, ge=1.0)
    retry_max_delay: float = Field(default=120.0, ge=0.0)
    upsert_batch_size: int = Field(default=5, ge=1)
    extraction_concurrency: int = Field(default=1, ge=1)
    document_limit: int = Field(default=0, ge=0, description="Development cap; 0 means no cap.")
    plain_text_mode: bool = False
    url_denylist: tuple[str, ...] = DEFAULT_URL_DENYLIST


# ---------------------------------------------------------------------------
# Run ledger
# ---------------------------------------------------------------------------


class FailedChunk(BaseModel):
    """A chunk that could not be embedded after all retries."""

    model_config = ConfigDict(frozen=True)

    essay_title: str
    essay_url: str
    chunk_index: int
    error: str
    attempts: int = 0


class ExtractionFailure(BaseModel):
    """An article URL that could not be fetched or parsed."""

    model_config = ConfigDict(frozen=True)

    url: str
    error: str


class PipelineRun(BaseModel):
    """Accounting for one ingestion invocation."""

    author: str
    source_url: str = ""
    urls_discovered: int = 0
    discovery_strategy: str = "none"
    discovery_errors: list[str] = Field(default_factory=list)
    documents_extracted: int = 0
    documents_restricted: int = 0
    extraction_failures: list[ExtractionFailure] = Field(default_factory=list)
    total_chunks: int = 0
    processed_chunks: int = 0
    failed_chunks: list[FailedChunk] = Field(default_factory=list)
    elapsed_seconds: float = 0.0

    @property
    def has_failures(self) -> bool:
        return bool(self.extraction_failures or self.failed_chunks)

    def record_failed_chunk(self, chunk: Chunk, error: str, attempts: int) -> None:
        self.failed_chunks.append(
            FailedChunk(
                essay_title=chunk.essay_title,
                essay_url=chunk.essay_url,
                chunk_index=chunk.chunk_index,
                error=error,
                attempts=attempts,
            )
        )


# ---------------------------------------------------------------------------
# Progress events
# ---------------------------------------------------------------------------

ProgressEventType = Literal["start", "progress", "complete", "error"]


class ProgressEvent(BaseModel):
    """One message on the progress stream.

    ``progress`` events carry ``current``/``total`` and the phase they belong
    to; ``complete`` carries the run summary; ``error`` carries a message.
    """

    model_config = ConfigDict(frozen=True)

    type: ProgressEventType
    current: int | None = None
    total: int | None = None
    title: str | None = None
    phase: Literal["extract", "embed"] | None = None
    result: dict[str, Any] | None = None
    message: str | None = None


# ---------------------------------------------------------------------------
# Scrape snapshot (discovery + extraction + chunking, no embedding)
# ---------------------------------------------------------------------------


class EssaySnapshot(BaseModel):
    """One essay with its chunks, as written to a scrape snapshot file."""

    title: str
    subtitle: str | None = None
    url: str
    date: str
    likes: str | None = None
    content: str
    length: int
    tokens: int
    chunks: list[Chunk] = Field(default_factory=list)

    def to_document(self) -> Document:
        return Document(
            title=self.title,
            subtitle=self.subtitle,
            date=self.date,
            likes=self.likes,
            content=self.content,
            url=self.url,
        )


class ScrapeResult(BaseModel):
    """Everything scraped from one publication, before embedding."""

    current_date: str
    author: str
    url: str
    length: int = 0
    tokens: int = 0
    essays: list[EssaySnapshot] = Field(default_factory=list)
