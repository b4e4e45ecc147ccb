"""Substack article extractor using httpx, BeautifulSoup and html2text.

Fetches one post page, drops paywalled posts, pulls the header metadata out
with CSS selectors and converts the ``div.available-content`` region to
markdown.  In plain-text mode images, links and inline emphasis are stripped
so the text embeds without markup noise.
"""

from __future__ import annotations

import html2text
import httpx
import structlog
from bs4 import BeautifulSoup, Tag

from essayvec.interfaces.article_provider import IArticleExtractor
from essayvec.models.essay import DATE_NOT_FOUND, UNTITLED, Document
from essayvec.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 10.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; essayvec/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

PAYWALL_SELECTOR = "h2.paywall-title"
TITLE_SELECTOR = "h1.post-title, h2"
SUBTITLE_SELECTOR = "h3.subtitle"
DATE_SELECTOR = 'div[class*="_meta_"]'
LIKES_SELECTOR = "a.post-ufi-button .label"
CONTENT_SELECTOR = "div.available-content"

_PLAIN_TEXT_DROP = ("script", "style", "img", "figure", "picture", "svg")
_PLAIN_TEXT_UNWRAP = ("a", "strong", "b", "em", "i", "code", "pre", "blockquote")


def _text_of(soup: BeautifulSoup, selector: str) -> str | None:
    element = soup.select_one(selector)
    if element is None:
        return None
    text = element.get_text(" ", strip=True)
    return text or None


def html_to_text(region: Tag, plain_text: bool = False) -> str:
    """Convert a content region to markdown, or to plain text."""
    if plain_text:
        for tag in region.find_all(_PLAIN_TEXT_DROP):
            tag.decompose()
        for tag in region.find_all(_PLAIN_TEXT_UNWRAP):
            tag.unwrap()

    converter = html2text.HTML2Text()
    converter.body_width = 0
    converter.ignore_images = plain_text
    converter.ignore_links = plain_text
    converter.ignore_emphasis = plain_text
    return converter.handle(str(region)).strip()


def parse_article(html: str, url: str, plain_text: bool = False) -> Document | None:
    """Parse a post page into a :class:`Document`.

    Returns ``None`` for paywalled pages and raises :class:`ExtractionError`
    when the page has no content region.
    """
    soup = BeautifulSoup(html, "html.parser")

    if soup.select_one(PAYWALL_SELECTOR) is not None:
        return None

    region = soup.select_one(CONTENT_SELECTOR)
    if region is None:
        raise ExtractionError(f"No content region ({CONTENT_SELECTOR}) in {url}", provider_name="substack")

    return Document(
        title=_text_of(soup, TITLE_SELECTOR) or UNTITLED,
        subtitle=_text_of(soup, SUBTITLE_SELECTOR),
        date=_text_of(soup, DATE_SELECTOR) or DATE_NOT_FOUND,
        likes=_text_of(soup, LIKES_SELECTOR),
        content=html_to_text(region, plain_text=plain_text),
        url=url,
    )


class SubstackExtractor(IArticleExtractor):
    """Article extraction for Substack-hosted publications.

    No retries happen here: a failed URL is reported to the caller, which
    records it and moves on to the next one.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        plain_text: bool = False,
    ) -> None:
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )
        self._plain_text = plain_text

    # ------------------------------------------------------------------
    # IArticleExtractor implementation
    # ------------------------------------------------------------------

    async def extract(self, url: str) -> Document | None:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise ExtractionError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise ExtractionError(
                message=f"HTTP {exc.response.status_code} for {url}",
                provider_name=self.get_provider_name(),
            ) from exc
        except httpx.HTTPError as exc:
            raise ExtractionError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        document = parse_article(response.text, url, plain_text=self._plain_text)
        if document is None:
            logger.info("article_restricted", url=url)
            return None

        logger.info(
            "article_extracted",
            url=url,
            title=document.title,
            text_length=len(document.content),
        )
        return document

    def get_provider_name(self) -> str:
        return "substack"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
