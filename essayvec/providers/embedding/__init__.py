"""Embedding provider implementations.

Only the OpenAI-compatible adapter ships; any endpoint speaking the OpenAI
embeddings API can be used by setting ``OPENAI_BASE_URL``.
"""

from essayvec.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
