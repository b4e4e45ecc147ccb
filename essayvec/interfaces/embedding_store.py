"""Abstract base class for the embedding store (persistence gateway).

The store is the only component allowed to mutate persisted embeddings.
Only the write side lives here; similarity search is served elsewhere.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from essayvec.models.rag import EmbeddingRecord


# Concrete implementations (essayvec/providers/store/):
#   ChromaDBEmbeddingStore  -- local persistent ChromaDB collection
#   SupabaseEmbeddingStore  -- substack_embeddings table via PostgREST
class IEmbeddingStore(ABC):
    """Contract for persisting embedding records keyed by author."""

    @abstractmethod
    async def clear(self, author: str) -> int:
        """Delete every stored record for *author*.

        Idempotent: clearing an author with no records is a no-op.  Returns
        the number of records deleted when the backend reports it, else 0.

        Raises
        ------
        essayvec.utils.errors.PersistenceError
            If the backend rejects the delete.
        """

    @abstractmethod
    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        """Insert *records* in one atomic call and return how many were written.

        Failures are not retried here; the backend's error message is kept
        in the raised :class:`~essayvec.utils.errors.PersistenceError`.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the backend is configured and reachable."""
