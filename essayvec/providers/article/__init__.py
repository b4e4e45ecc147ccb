"""Article extraction implementations."""

from essayvec.providers.article.substack_extractor import SubstackExtractor

__all__ = ["SubstackExtractor"]
