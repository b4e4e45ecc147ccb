"""Abstract base class for article URL discovery."""

from __future__ import annotations

from abc import ABC, abstractmethod

from essayvec.models.essay import DiscoveryResult, SourceDescriptor


# Concrete implementation: SitemapDiscovery (essayvec/providers/discovery/)
class IUrlDiscovery(ABC):
    """Contract for resolving the article URLs of one publication."""

    @abstractmethod
    async def discover(self, source: SourceDescriptor) -> DiscoveryResult:
        """Return the ordered, denylist-filtered article URLs for *source*.

        Implementations fail soft: when every strategy fails the result has
        no URLs, ``strategy == "none"`` and the failures in ``errors``.
        Network and parse failures must not raise.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"sitemap"``."""
