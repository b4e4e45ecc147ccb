"""Unit tests for sitemap-first URL discovery with the feed fallback."""

from __future__ import annotations

import httpx
import pytest

from essayvec.models.essay import SourceDescriptor
from essayvec.providers.discovery.sitemap_discovery import (
    SitemapDiscovery,
    filter_urls,
    parse_feed,
    parse_sitemap,
)
from essayvec.utils.errors import DiscoveryError

SOURCE = SourceDescriptor.from_url("https://writer.substack.com")

SITEMAP_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://writer.substack.com/p/first-essay</loc><lastmod>2024-01-01</lastmod></url>
  <url><loc>https://writer.substack.com/about</loc></url>
  <url><loc>https://writer.substack.com/archive</loc></url>
  <url><loc>https://writer.substack.com/podcast/episode-1</loc></url>
  <url><loc>https://writer.substack.com/p/second-essay</loc></url>
  <url><loc>https://writer.substack.com/p/first-essay</loc></url>
</urlset>
"""

EMPTY_SITEMAP_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://writer.substack.com/about</loc></url>
</urlset>
"""

FEED_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>Writer</title>
    <link>https://writer.substack.com</link>
    <item><title>Recent</title><link>https://writer.substack.com/p/recent-essay</link></item>
    <item><title>Episode</title><link>https://writer.substack.com/podcast/ep</link></item>
    <item><title>Older</title><link>https://writer.substack.com/p/older-essay</link></item>
  </channel>
</rss>
"""

EMPTY_FEED_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0"><channel><title>Writer</title></channel></rss>
"""


def _make_discovery(routes: dict, requested: list[str], **kwargs) -> SitemapDiscovery:
    """Build a discovery whose HTTP client answers from *routes* keyed by path."""

    def handler(request: httpx.Request) -> httpx.Response:
        requested.append(request.url.path)
        outcome = routes.get(request.url.path)
        if outcome is None:
            return httpx.Response(404, text="not found")
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return SitemapDiscovery(http_client=client, **kwargs)


# ======================================================================
# Pure helpers
# ======================================================================


class TestFilterUrls:
    def test_drops_denylisted_paths_and_duplicates(self) -> None:
        urls = [
            "https://w.substack.com/p/a",
            "https://w.substack.com/about",
            "https://w.substack.com/p/a",
            "https://w.substack.com/archive?sort=new",
            "https://w.substack.com/p/b",
        ]
        assert filter_urls(urls) == ["https://w.substack.com/p/a", "https://w.substack.com/p/b"]

    def test_host_is_not_matched(self) -> None:
        assert filter_urls(["https://aboutfaces.substack.com/p/essay"]) == [
            "https://aboutfaces.substack.com/p/essay"
        ]

    def test_custom_denylist_case_insensitive(self) -> None:
        urls = ["https://w.com/p/Notes-1", "https://w.com/p/essay"]
        assert filter_urls(urls, denylist=("notes",)) == ["https://w.com/p/essay"]


class TestParsers:
    def test_parse_sitemap_with_namespace(self) -> None:
        urls = parse_sitemap(SITEMAP_XML)
        assert urls[0] == "https://writer.substack.com/p/first-essay"
        assert len(urls) == 6

    def test_parse_sitemap_without_namespace(self) -> None:
        xml = b"<urlset><url><loc> https://w.com/p/a </loc></url><url><loc></loc></url></urlset>"
        assert parse_sitemap(xml) == ["https://w.com/p/a"]

    def test_parse_sitemap_invalid_xml(self) -> None:
        with pytest.raises(DiscoveryError):
            parse_sitemap(b"<html><body>oops")

    def test_parse_feed_links(self) -> None:
        assert parse_feed(FEED_XML) == [
            "https://writer.substack.com/p/recent-essay",
            "https://writer.substack.com/podcast/ep",
            "https://writer.substack.com/p/older-essay",
        ]


# ======================================================================
# SitemapDiscovery
# ======================================================================


class TestSitemapDiscovery:
    @pytest.mark.asyncio
    async def test_sitemap_success_skips_feed(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery(
            {"/sitemap.xml": httpx.Response(200, content=SITEMAP_XML)}, requested
        )

        result = await discovery.discover(SOURCE)

        assert result.strategy == "sitemap"
        assert result.urls == [
            "https://writer.substack.com/p/first-essay",
            "https://writer.substack.com/p/second-essay",
        ]
        assert result.errors == []
        assert requested == ["/sitemap.xml"]

    @pytest.mark.asyncio
    async def test_empty_sitemap_falls_back_to_feed_once(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery(
            {
                "/sitemap.xml": httpx.Response(200, content=EMPTY_SITEMAP_XML),
                "/feed": httpx.Response(200, content=FEED_XML),
            },
            requested,
        )

        result = await discovery.discover(SOURCE)

        assert result.strategy == "feed"
        assert result.urls == [
            "https://writer.substack.com/p/recent-essay",
            "https://writer.substack.com/p/older-essay",
        ]
        assert requested.count("/feed") == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("sitemap:")

    @pytest.mark.asyncio
    async def test_missing_sitemap_falls_back_to_feed(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery({"/feed": httpx.Response(200, content=FEED_XML)}, requested)

        result = await discovery.discover(SOURCE)

        assert result.strategy == "feed"
        assert "404" in result.errors[0]

    @pytest.mark.asyncio
    async def test_invalid_sitemap_falls_back_to_feed(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery(
            {
                "/sitemap.xml": httpx.Response(200, content=b"<not-xml"),
                "/feed": httpx.Response(200, content=FEED_XML),
            },
            requested,
        )

        result = await discovery.discover(SOURCE)

        assert result.strategy == "feed"
        assert len(result.urls) == 2

    @pytest.mark.asyncio
    async def test_both_strategies_fail_soft(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery(
            {
                "/sitemap.xml": httpx.ConnectError("connection refused"),
                "/feed": httpx.Response(500, text="boom"),
            },
            requested,
        )

        result = await discovery.discover(SOURCE)

        assert result.urls == []
        assert result.strategy == "none"
        assert len(result.errors) == 2
        assert result.errors[1].startswith("feed:")

    @pytest.mark.asyncio
    async def test_both_strategies_empty(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery(
            {
                "/sitemap.xml": httpx.Response(200, content=EMPTY_SITEMAP_XML),
                "/feed": httpx.Response(200, content=EMPTY_FEED_XML),
            },
            requested,
        )

        result = await discovery.discover(SOURCE)

        assert result.urls == []
        assert result.strategy == "none"
        assert requested == ["/sitemap.xml", "/feed"]

    @pytest.mark.asyncio
    async def test_custom_feed_path(self) -> None:
        requested: list[str] = []
        discovery = _make_discovery(
            {"/feed.xml": httpx.Response(200, content=FEED_XML)},
            requested,
            feed_path="feed.xml",
        )

        result = await discovery.discover(SOURCE)

        assert result.strategy == "feed"
        assert requested == ["/sitemap.xml", "/feed.xml"]

    def test_provider_name(self) -> None:
        assert SitemapDiscovery(http_client=httpx.AsyncClient()).get_provider_name() == "sitemap"
