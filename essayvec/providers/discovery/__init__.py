"""URL discovery implementations."""

from essayvec.providers.discovery.sitemap_discovery import SitemapDiscovery

__all__ = ["SitemapDiscovery"]
