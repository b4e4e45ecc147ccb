"""Abstract interfaces for every external collaborator of the pipeline.

Concrete adapters live under ``essayvec/providers/``; services depend only on
these contracts so tests can substitute fakes.
"""

from essayvec.interfaces.article_provider import IArticleExtractor
from essayvec.interfaces.embedding_provider import IEmbeddingProvider
from essayvec.interfaces.embedding_store import IEmbeddingStore
from essayvec.interfaces.url_discovery import IUrlDiscovery

__all__ = [
    "IArticleExtractor",
    "IEmbeddingProvider",
    "IEmbeddingStore",
    "IUrlDiscovery",
]
