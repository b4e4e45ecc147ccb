"""Token-bounded sentence chunking.

Splits an essay's normalized text into :class:`~essayvec.models.rag.Chunk`
objects no larger than a token budget (200 by default).

The algorithm:

1. If the whole text fits in the budget, it is one chunk.
2. Otherwise the text is split on ``". "``.  Each sentence gets its period
   back only when it ends in a letter or digit; a sentence ending in a
   quote, bracket or other punctuation is followed by a plain space, so
   trailing punctuation is never corrupted.
3. Sentences are packed greedily.  When adding the next sentence would
   push the running chunk over budget, the chunk is closed and the
   sentence starts a new one.

A single sentence larger than the budget becomes its own over-budget chunk;
it is never split further.  The output depends only on the input text, so
re-chunking a document always yields the same chunks.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import lru_cache

import structlog
import tiktoken

from essayvec.models.essay import Document
from essayvec.models.rag import Chunk

logger = structlog.get_logger(logger_name=__name__)

TokenCounter = Callable[[str], int]

SENTENCE_DELIMITER = ". "


@lru_cache(maxsize=None)
def _get_encoding(name: str) -> tiktoken.Encoding:
    return tiktoken.get_encoding(name)


def tiktoken_counter(encoding_name: str = "cl100k_base") -> TokenCounter:
    """Return a counter backed by a tiktoken encoding, loaded on first use."""

    def count(text: str) -> int:
        return len(_get_encoding(encoding_name).encode(text, disallowed_special=()))

    return count


def split_sentences(text: str) -> list[str]:
    """Split *text* on ``". "`` and re-attach the separator to each piece.

    The pieces concatenate back to the original sentence sequence, with a
    period restored only after alphanumeric endings.
    """
    pieces: list[str] = []
    for sentence in text.split(SENTENCE_DELIMITER):
        if not sentence.strip():
            continue
        last = sentence[-1]
        if last.isascii() and last.isalnum():
            pieces.append(f"{sentence}. ")
        else:
            pieces.append(f"{sentence} ")
    return pieces


class SentenceChunker:
    """Packs sentences into chunks of at most *budget* tokens.

    Parameters
    ----------
    budget:
        Maximum tokens per chunk (default 200).
    token_counter:
        Callable returning the token count of a string.  Defaults to the
        ``cl100k_base`` tiktoken encoding, the one used by OpenAI embedding
        models.
    """

    def __init__(
        self,
        budget: int = 200,
        token_counter: TokenCounter | None = None,
        encoding_name: str = "cl100k_base",
    ) -> None:
        if budget < 1:
            raise ValueError("budget must be >= 1")
        self._budget = budget
        self._count = token_counter or tiktoken_counter(encoding_name)

    @property
    def budget(self) -> int:
        return self._budget

    def count_tokens(self, text: str) -> int:
        return self._count(text)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, document: Document) -> list[Chunk]:
        """Chunk a Document's content, carrying its title, URL and date."""
        return self.chunk_text(document.content, document.title, document.url, document.date)

    def chunk_text(self, text: str, title: str, url: str, date: str) -> list[Chunk]:
        if not text or not text.strip():
            return []

        pieces = self._split(text)
        chunks = [
            Chunk(
                essay_title=title,
                essay_url=url,
                essay_date=date,
                content=piece,
                content_length=len(piece),
                content_tokens=self._count(piece),
                chunk_index=index,
            )
            for index, piece in enumerate(pieces)
        ]

        logger.debug(
            "chunking_complete",
            url=url,
            num_chunks=len(chunks),
            over_budget=sum(1 for c in chunks if c.content_tokens > self._budget),
        )
        return chunks

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _split(self, text: str) -> list[str]:
        stripped = text.strip()
        if self._count(stripped) <= self._budget:
            return [stripped]

        chunks: list[str] = []
        buffer = ""
        for piece in split_sentences(text):
            candidate = (buffer + piece).strip()
            if buffer.strip() and self._count(candidate) > self._budget:
                chunks.append(buffer.strip())
                buffer = piece
            else:
                buffer += piece

        if buffer.strip():
            chunks.append(buffer.strip())
        return chunks
