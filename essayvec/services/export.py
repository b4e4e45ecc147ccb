"""Markdown export of extracted essays.

Writes one file per essay under ``<output_dir>/<writer>/<slug>.md`` where
the slug is the last segment of the essay URL.  Existing files are left
untouched, so re-running an export only adds new essays.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urlparse

import structlog

from essayvec.models.essay import Document

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def slug_from_url(url: str) -> str:
    """``https://x.substack.com/p/my-essay`` -> ``my-essay``."""
    segments = [s for s in urlparse(url).path.split("/") if s]
    slug = _UNSAFE_FILENAME_CHARS.sub("", segments[-1]) if segments else ""
    return slug.strip(". ") or "index"


def render_document(document: Document, plain_text: bool = False) -> str:
    """Prepend title, subtitle, date and (markdown only) likes to the essay body."""
    if plain_text:
        text = f"{document.title}\n\n"
        if document.subtitle:
            text += f"{document.subtitle}\n\n"
        text += f"Date: {document.date}\n"
        return text + document.content

    text = f"# {document.title}\n\n"
    if document.subtitle:
        text += f"## {document.subtitle}\n\n"
    text += f"**{document.date}**\n\n"
    if document.likes is not None:
        text += f"**Likes:** {document.likes}\n\n"
    return text + document.content


def export_documents(
    documents: Iterable[Document],
    output_dir: str | Path,
    writer: str,
    plain_text: bool = False,
) -> list[Path]:
    """Write each document to its own file; return the paths actually written."""
    target = Path(output_dir) / writer
    target.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for document in documents:
        path = target / f"{slug_from_url(document.url)}.md"
        if path.exists():
            logger.info("export_skipped_existing", path=str(path))
            continue
        path.write_text(render_document(document, plain_text=plain_text), encoding="utf-8")
        written.append(path)
        logger.info("export_written", path=str(path))
    return written
