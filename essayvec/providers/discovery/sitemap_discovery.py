"""Article URL discovery from a publication's sitemap, with an RSS fallback.

Primary strategy: ``{base_url}sitemap.xml``, parsed with ElementTree; every
``<url><loc>`` entry is a candidate.  If that fails or yields nothing after
filtering, the syndication feed (``{base_url}feed``) is read with
feedparser.  The feed only lists the most recent posts (around 20), so a run
that falls back covers recent essays only.

Both strategies fail soft: the caller always gets a
:class:`~essayvec.models.essay.DiscoveryResult`, with ``errors`` describing
what went wrong.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Iterable
from urllib.parse import urlparse

import feedparser
import httpx
import structlog

from essayvec.interfaces.url_discovery import IUrlDiscovery
from essayvec.models.essay import DiscoveryResult, SourceDescriptor
from essayvec.models.pipeline import DEFAULT_URL_DENYLIST
from essayvec.utils.errors import DiscoveryError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; essayvec/0.1)",
    "Accept": "application/xml,text/xml;q=0.9,*/*;q=0.8",
}


def filter_urls(urls: Iterable[str], denylist: Iterable[str] = DEFAULT_URL_DENYLIST) -> list[str]:
    """Drop URLs whose path contains a denylisted keyword; de-duplicate in order.

    Only the path is checked, so a publication whose *host* happens to
    contain "about" keeps its articles.
    """
    keywords = [k.lower() for k in denylist if k]
    seen: set[str] = set()
    kept: list[str] = []
    for url in urls:
        url = url.strip()
        if not url or url in seen:
            continue
        path = urlparse(url).path.lower()
        if any(keyword in path for keyword in keywords):
            continue
        seen.add(url)
        kept.append(url)
    return kept


def _local_name(tag: str) -> str:
    """``{http://www.sitemaps.org/schemas/sitemap/0.9}loc`` -> ``loc``."""
    return tag.rsplit("}", 1)[-1]


def parse_sitemap(xml_bytes: bytes) -> list[str]:
    """Return the ``<loc>`` of every ``<url>`` entry, namespace-agnostic."""
    try:
        root = ET.fromstring(xml_bytes)
    except ET.ParseError as exc:
        raise DiscoveryError(f"sitemap is not valid XML: {exc}", provider_name="sitemap") from exc

    urls: list[str] = []
    for element in root.iter():
        if _local_name(element.tag) != "url":
            continue
        for child in element:
            if _local_name(child.tag) == "loc" and child.text and child.text.strip():
                urls.append(child.text.strip())
                break
    return urls


def parse_feed(xml_bytes: bytes) -> list[str]:
    """Return the entry links of an RSS/Atom feed."""
    feed = feedparser.parse(xml_bytes)
    if feed.bozo and not feed.entries:
        raise DiscoveryError(
            f"feed could not be parsed: {feed.get('bozo_exception')}",
            provider_name="feed",
        )
    return [entry.get("link") for entry in feed.entries if entry.get("link")]


class SitemapDiscovery(IUrlDiscovery):
    """Sitemap-first URL discovery with a one-shot feed fallback."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        denylist: Iterable[str] = DEFAULT_URL_DENYLIST,
        sitemap_path: str = "sitemap.xml",
        feed_path: str = "feed",
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )
        self._denylist = tuple(denylist)
        self._sitemap_path = sitemap_path
        self._feed_path = feed_path

    # ------------------------------------------------------------------
    # IUrlDiscovery implementation
    # ------------------------------------------------------------------

    async def discover(self, source: SourceDescriptor) -> DiscoveryResult:
        errors: list[str] = []

        try:
            urls = await self.from_sitemap(source)
        except DiscoveryError as exc:
            errors.append(f"sitemap: {exc.message}")
            logger.warning("sitemap_discovery_failed", source=source.base_url, error=exc.message)
        else:
            if urls:
                logger.info("urls_discovered", source=source.base_url, strategy="sitemap", count=len(urls))
                return DiscoveryResult(urls=urls, strategy="sitemap", errors=errors)
            errors.append("sitemap: no article URLs after filtering")

        logger.warning(
            "falling_back_to_feed",
            source=source.base_url,
            note="feed lists only the most recent posts (~20)",
        )
        try:
            urls = await self.from_feed(source)
        except DiscoveryError as exc:
            errors.append(f"feed: {exc.message}")
            logger.error("feed_discovery_failed", source=source.base_url, error=exc.message)
            return DiscoveryResult(urls=[], strategy="none", errors=errors)

        if not urls:
            errors.append("feed: no article URLs after filtering")
            logger.error("no_urls_discovered", source=source.base_url)
            return DiscoveryResult(urls=[], strategy="none", errors=errors)

        logger.info("urls_discovered", source=source.base_url, strategy="feed", count=len(urls))
        return DiscoveryResult(urls=urls, strategy="feed", errors=errors)

    def get_provider_name(self) -> str:
        return "sitemap"

    # ------------------------------------------------------------------
    # Strategies
    # ------------------------------------------------------------------

    async def from_sitemap(self, source: SourceDescriptor) -> list[str]:
        """Fetch and parse the sitemap; raises :class:`DiscoveryError`."""
        body = await self._fetch(f"{source.base_url}{self._sitemap_path}", "sitemap")
        raw = parse_sitemap(body)
        urls = filter_urls(raw, self._denylist)
        logger.debug("sitemap_parsed", total=len(raw), kept=len(urls))
        return urls

    async def from_feed(self, source: SourceDescriptor) -> list[str]:
        """Fetch and parse the feed; raises :class:`DiscoveryError`."""
        body = await self._fetch(f"{source.base_url}{self._feed_path}", "feed")
        raw = parse_feed(body)
        urls = filter_urls(raw, self._denylist)
        logger.debug("feed_parsed", total=len(raw), kept=len(urls))
        return urls

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _fetch(self, url: str, strategy: str) -> bytes:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DiscoveryError(
                f"HTTP {exc.response.status_code} for {url}", provider_name=strategy
            ) from exc
        except httpx.HTTPError as exc:
            raise DiscoveryError(f"HTTP error fetching {url}: {exc}", provider_name=strategy) from exc
        return response.content
