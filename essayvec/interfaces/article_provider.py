"""Abstract base class for article extraction.

An extractor turns one article URL into a normalized
:class:`~essayvec.models.essay.Document`.  Three outcomes are possible:
a Document, ``None`` for restricted (paywalled) content, or an
:class:`~essayvec.utils.errors.ExtractionError`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from essayvec.models.essay import Document


# Concrete implementation: SubstackExtractor (essayvec/providers/article/)
class IArticleExtractor(ABC):
    """Contract for services that extract readable essays from URLs."""

    @abstractmethod
    async def extract(self, url: str) -> Document | None:
        """Fetch *url* and return its normalized Document.

        Returns
        -------
        Document or None
            ``None`` when the page carries a restriction marker.  Dropping a
            restricted article is a valid outcome, not an error.

        Raises
        ------
        essayvec.utils.errors.ExtractionError
            If the fetch fails, the server answers non-2xx, or the page has
            no content region.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"substack"``."""
