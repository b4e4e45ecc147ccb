"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
embedding pipeline depends only on this interface, so the OpenAI adapter can
be swapped for any OpenAI-compatible endpoint or a test fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (essayvec/providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the embedding pipeline."""

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string.

        Returns
        -------
        list[float]
            The embedding vector; its length equals :meth:`get_dimension`.

        Raises
        ------
        essayvec.utils.errors.RateLimitError
            The service rate-limited the request (retryable).
        essayvec.utils.errors.QuotaExhaustedError
            The account is out of quota (fatal to the run).
        essayvec.utils.errors.EmbeddingError
            Any other failure (retryable up to the ceiling).
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors, e.g. ``1536``."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured.

        Must not generate an embedding.
        """
