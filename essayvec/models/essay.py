"""Source-side models: where essays come from and what one extracted essay is.

``SourceDescriptor`` is fixed for the lifetime of a run.  ``Document`` is the
normalized result of extracting one article; restricted (paywalled) articles
never become Documents.
"""

from __future__ import annotations

from typing import Literal
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field

from essayvec.utils.errors import ConfigurationError

UNTITLED = "Untitled"
DATE_NOT_FOUND = "Date not found"


class SourceDescriptor(BaseModel):
    """Base address of a publication plus the writer name derived from its host."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(description="Publication root URL, always ending in '/'.")
    writer: str = Field(description="Short writer identifier, e.g. 'astralcodexten'.")

    @classmethod
    def from_url(cls, url: str) -> SourceDescriptor:
        """Build a descriptor from a publication URL.

        ``https://www.example.substack.com`` -> writer ``example``;
        ``https://thefitzwilliam.com/`` -> writer ``thefitzwilliam``.
        """
        url = (url or "").strip()
        parsed = urlparse(url)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ConfigurationError(f"Not a valid publication URL: {url!r}")

        labels = parsed.hostname.split(".")
        writer = labels[1] if labels[0] == "www" and len(labels) > 1 else labels[0]
        base_url = url if url.endswith("/") else f"{url}/"
        return cls(base_url=base_url, writer=writer)


class DiscoveryResult(BaseModel):
    """Ordered candidate article URLs and how they were found."""

    model_config = ConfigDict(frozen=True)

    urls: list[str] = Field(default_factory=list)
    strategy: Literal["sitemap", "feed", "none"] = "none"
    errors: list[str] = Field(
        default_factory=list,
        description="One message per strategy that failed or came back empty.",
    )


class Document(BaseModel):
    """One extracted essay, normalized to portable markdown-like text."""

    model_config = ConfigDict(frozen=True)

    title: str = UNTITLED
    subtitle: str | None = None
    # Best-effort text scraped from the page header; not guaranteed parseable.
    date: str = DATE_NOT_FOUND
    # Like-button label text, e.g. "42"; None when the page has no like button.
    likes: str | None = None
    content: str
    url: str
