"""Unit tests for the Substack article extractor."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from essayvec.models.essay import DATE_NOT_FOUND, UNTITLED
from essayvec.providers.article.substack_extractor import SubstackExtractor, parse_article
from essayvec.utils.errors import ExtractionError

URL = "https://writer.substack.com/p/the-essay"

ARTICLE_HTML = """
<html><body>
  <h1 class="post-title">The Essay</h1>
  <h3 class="subtitle">A subtitle</h3>
  <div class="pencraft _meta_x1y2">Jan 5, 2024</div>
  <a class="post-ufi-button style-button"><div class="label">42</div></a>
  <div class="available-content">
    <p>First <strong>bold</strong> paragraph with <a href="https://example.com/ref">a link</a>.</p>
    <figure><img src="https://img.example.com/pic.png" alt="pic"></figure>
    <p>Second paragraph.</p>
  </div>
</body></html>
"""

PAYWALLED_HTML = """
<html><body>
  <h1 class="post-title">Members Only</h1>
  <div class="available-content"><p>Teaser.</p></div>
  <h2 class="paywall-title">This post is for paid subscribers</h2>
</body></html>
"""

BARE_HTML = """
<html><body>
  <div class="available-content"><p>Just text.</p></div>
</body></html>
"""


def _make_response(status: int = 200, text: str = ARTICLE_HTML) -> httpx.Response:
    return httpx.Response(status, text=text, request=httpx.Request("GET", URL))


def _make_extractor(response=None, side_effect=None, plain_text: bool = False) -> SubstackExtractor:
    client = MagicMock(spec=httpx.AsyncClient)
    client.get = AsyncMock(return_value=response, side_effect=side_effect)
    return SubstackExtractor(http_client=client, plain_text=plain_text)


# ======================================================================
# parse_article
# ======================================================================


class TestParseArticle:
    def test_like_count_captured(self) -> None:
        assert parse_article(ARTICLE_HTML, URL).likes == "42"
        assert parse_article(BARE_HTML, URL).likes is None

    def test_markdown_mode_keeps_markup(self) -> None:
        document = parse_article(ARTICLE_HTML, URL)

        assert document is not None
        assert document.title == "The Essay"
        assert document.subtitle == "A subtitle"
        assert document.date == "Jan 5, 2024"
        assert document.url == URL
        assert "**bold**" in document.content
        assert "](https://example.com/ref)" in document.content
        assert "Second paragraph." in document.content

    def test_plain_text_mode_strips_markup(self) -> None:
        document = parse_article(ARTICLE_HTML, URL, plain_text=True)

        assert document is not None
        assert "First bold paragraph with a link." in document.content
        assert "Second paragraph." in document.content
        assert "**" not in document.content
        assert "](" not in document.content
        assert "img.example.com" not in document.content

    def test_paywalled_page_is_dropped(self) -> None:
        assert parse_article(PAYWALLED_HTML, URL) is None

    def test_missing_metadata_uses_defaults(self) -> None:
        document = parse_article(BARE_HTML, URL)

        assert document is not None
        assert document.title == UNTITLED
        assert document.subtitle is None
        assert document.date == DATE_NOT_FOUND
        assert document.content == "Just text."

    def test_h2_used_when_no_post_title(self) -> None:
        html = '<h2>Fallback Title</h2><div class="available-content"><p>Body.</p></div>'
        document = parse_article(html, URL)
        assert document is not None
        assert document.title == "Fallback Title"

    def test_missing_content_region_raises(self) -> None:
        with pytest.raises(ExtractionError) as exc_info:
            parse_article("<html><body><p>Nothing here</p></body></html>", URL)
        assert exc_info.value.provider_name == "substack"


# ======================================================================
# SubstackExtractor
# ======================================================================


class TestSubstackExtractor:
    @pytest.mark.asyncio
    async def test_extract_returns_document(self) -> None:
        extractor = _make_extractor(_make_response())

        document = await extractor.extract(URL)

        assert document is not None
        assert document.title == "The Essay"

    @pytest.mark.asyncio
    async def test_extract_restricted_returns_none(self) -> None:
        extractor = _make_extractor(_make_response(text=PAYWALLED_HTML))
        assert await extractor.extract(URL) is None

    @pytest.mark.asyncio
    async def test_plain_text_flag_reaches_parser(self) -> None:
        extractor = _make_extractor(_make_response(), plain_text=True)

        document = await extractor.extract(URL)

        assert document is not None
        assert "**" not in document.content

    @pytest.mark.asyncio
    async def test_http_error_status_raises(self) -> None:
        extractor = _make_extractor(_make_response(status=404, text="gone"))

        with pytest.raises(ExtractionError, match="HTTP 404"):
            await extractor.extract(URL)

    @pytest.mark.asyncio
    async def test_timeout_raises(self) -> None:
        extractor = _make_extractor(side_effect=httpx.ReadTimeout("too slow"))

        with pytest.raises(ExtractionError, match="Timeout"):
            await extractor.extract(URL)

    @pytest.mark.asyncio
    async def test_connection_error_raises(self) -> None:
        extractor = _make_extractor(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ExtractionError, match="HTTP error"):
            await extractor.extract(URL)

    def test_provider_name(self) -> None:
        assert _make_extractor(_make_response()).get_provider_name() == "substack"
