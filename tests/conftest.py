"""Shared pytest fixtures for the essayvec test suite."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from essayvec.interfaces.embedding_provider import IEmbeddingProvider
from essayvec.interfaces.embedding_store import IEmbeddingStore
from essayvec.models.essay import Document
from essayvec.models.pipeline import PipelineConfig
from essayvec.models.rag import Chunk, EmbeddingRecord
from essayvec.utils.errors import PersistenceError

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    """Manual monotonic clock; ``sleep`` advances it instead of waiting."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Scriptable embedding provider.

    ``script`` maps a chunk's text to a list of outcomes consumed one per
    call: an exception instance is raised, an ``asyncio.Event`` is awaited
    before answering.  Texts with no outcomes left get a vector.
    """

    def __init__(self, dimension: int = 8, script: dict[str, list[Any]] | None = None) -> None:
        self.dimension = dimension
        self.script = script or {}
        self.calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        outcomes = self.script.get(text)
        outcome = outcomes.pop(0) if outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if isinstance(outcome, asyncio.Event):
                await outcome.wait()
            else:
                await asyncio.sleep(0)
        finally:
            self.in_flight -= 1
        return [float(len(text))] + [0.0] * (self.dimension - 1)

    def get_dimension(self) -> int:
        return self.dimension

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


class InMemoryStore(IEmbeddingStore):
    """Store keeping records in a dict keyed by ``record_id``.

    ``events`` logs every call in order as ``("clear", author)`` or
    ``("upsert", [record_id, ...])``.  ``fail_on_upsert`` makes the n-th
    upsert call (1-based) raise :class:`PersistenceError`.
    """

    def __init__(self, fail_on_upsert: int | None = None) -> None:
        self.records: dict[str, EmbeddingRecord] = {}
        self.events: list[tuple[str, Any]] = []
        self.upsert_calls = 0
        self._fail_on_upsert = fail_on_upsert

    async def clear(self, author: str) -> int:
        self.events.append(("clear", author))
        doomed = [key for key, record in self.records.items() if record.author == author]
        for key in doomed:
            del self.records[key]
        return len(doomed)

    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        self.upsert_calls += 1
        if self._fail_on_upsert is not None and self.upsert_calls == self._fail_on_upsert:
            raise PersistenceError("relation does not exist", provider_name="memory")
        self.events.append(("upsert", [r.record_id for r in records]))
        for record in records:
            self.records[record.record_id] = record
        return len(records)

    @property
    def upserted_contents(self) -> list[str]:
        return [record.content for record in self.records.values()]

    def get_provider_name(self) -> str:
        return "memory"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_chunk(
    content: str = "Some essay text.",
    index: int = 0,
    title: str = "An Essay",
    url: str = "https://writer.substack.com/p/an-essay",
    date: str = "Jan 1, 2024",
) -> Chunk:
    return Chunk(
        essay_title=title,
        essay_url=url,
        essay_date=date,
        content=content,
        content_length=len(content),
        content_tokens=len(content.split()),
        chunk_index=index,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def word_counter() -> Callable[[str], int]:
    """Token counter that counts whitespace-separated words."""
    return lambda text: len(text.split())


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_provider_factory() -> Callable[..., FakeEmbeddingProvider]:
    return FakeEmbeddingProvider


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def memory_store_factory() -> Callable[..., InMemoryStore]:
    return InMemoryStore


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def chunk_factory() -> Callable[..., Chunk]:
    return make_chunk


@pytest.fixture
def fast_config() -> PipelineConfig:
    """Pipeline config with no pacing and no backoff waits."""
    return PipelineConfig(
        max_concurrent_embeddings=3,
        dispatch_interval=0.0,
        retry_base_delay=0.0,
        upsert_batch_size=2,
    )


@pytest.fixture
def sample_document() -> Document:
    return Document(
        title="On Walking",
        subtitle="Notes from the road",
        date="Mar 3, 2024",
        content="Walking clears the mind. It also tires the legs.",
        url="https://writer.substack.com/p/on-walking",
    )
