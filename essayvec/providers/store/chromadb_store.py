"""ChromaDB embedding store adapter.

Wraps ``chromadb.PersistentClient`` to implement :class:`IEmbeddingStore`.
Fully local, no external service required; the default backend.  Records
are keyed by :attr:`EmbeddingRecord.record_id`, so re-writing the same
author/essay/position replaces the row instead of duplicating it.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import chromadb
import structlog

from essayvec.interfaces.embedding_store import IEmbeddingStore
from essayvec.models.rag import EmbeddingRecord
from essayvec.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """No-op embedding function that prevents ChromaDB from loading a model.

    Every record arrives with its vector already computed, so ChromaDB's
    built-in embedding is never invoked.  Without this, ChromaDB downloads
    its default ONNX model on collection creation.
    """

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "essayvec stores pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        """Return function name (required by ChromaDB's EmbeddingFunction protocol)."""
        return "noop_precomputed"


class ChromaDBEmbeddingStore(IEmbeddingStore):
    """Embedding store backed by a persistent ChromaDB collection.

    Parameters
    ----------
    persist_directory:
        On-disk location of the ChromaDB database.
    collection_name:
        Collection holding the records; mirrors the ``substack_embeddings``
        table of the hosted backend.
    client:
        Optional pre-built ChromaDB client (tests use an in-memory one).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "substack_embeddings",
        client: Any | None = None,
    ) -> None:
        self._persist_directory = persist_directory
        self._collection_name = collection_name
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by an older ChromaDB with the default embedding
        # function reject a different one; reopen without it in that case.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # IEmbeddingStore implementation
    # ------------------------------------------------------------------

    async def clear(self, author: str) -> int:
        """Delete every record whose ``author`` metadata equals *author*."""
        try:
            existing = self._collection.get(where={"author": author})
            count = len(existing["ids"]) if existing["ids"] else 0

            if count > 0:
                self._collection.delete(where={"author": author})

            logger.info("chromadb_clear_author", author=author, deleted_count=count)
            return count

        except Exception as exc:
            raise PersistenceError(
                message=f"ChromaDB clear failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        """Write *records* in a single ChromaDB upsert call."""
        if not records:
            return 0

        try:
            self._collection.upsert(
                ids=[r.record_id for r in records],
                embeddings=[r.embedding for r in records],
                documents=[r.content for r in records],
                metadatas=[self._record_to_metadata(r) for r in records],
            )
        except Exception as exc:
            raise PersistenceError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", count=len(records))
        return len(records)

    def count(self, author: str | None = None) -> int:
        """Number of stored records, optionally for one author."""
        if author is None:
            return self._collection.count()
        existing = self._collection.get(where={"author": author})
        return len(existing["ids"]) if existing["ids"] else 0

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        """Return ``True`` if the ChromaDB collection is accessible."""
        try:
            self._collection.count()
            return True
        except Exception:
            return False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _record_to_metadata(record: EmbeddingRecord) -> dict[str, Any]:
        """Every table column except ``content`` and ``embedding``, plus the position."""
        row = record.to_row()
        metadata = {k: v for k, v in row.items() if k not in ("content", "embedding")}
        metadata["chunk_index"] = record.chunk_index
        return metadata
