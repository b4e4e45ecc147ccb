"""Chunk and embedding-record models.

A :class:`Chunk` is the unit that gets embedded; an :class:`EmbeddingRecord`
is a Chunk that has its vector.  ``EmbeddingRecord.to_row`` produces exactly
the columns of the ``substack_embeddings`` table that the read-side
``match_substack_embeddings`` similarity function expects.
"""

from __future__ import annotations

import hashlib
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """A token-bounded slice of one essay's body.

    Chunks are created by :class:`~essayvec.services.ingestion.chunker.SentenceChunker`.
    ``chunk_index`` keeps narrative order within the essay.
    """

    model_config = ConfigDict(frozen=True)

    essay_title: str
    essay_url: str
    essay_date: str
    content: str
    content_length: int = Field(ge=0, description="Length of content in characters.")
    content_tokens: int = Field(ge=0, description="Token count of content.")
    chunk_index: int = Field(default=0, ge=0)


class EmbeddingRecord(BaseModel):
    """A chunk plus its vector and owning author, ready for the store."""

    model_config = ConfigDict(frozen=True)

    author: str
    essay_title: str
    essay_url: str
    essay_date: str
    content: str
    content_length: int = Field(ge=0)
    content_tokens: int = Field(ge=0)
    chunk_index: int = Field(default=0, ge=0)
    embedding: list[float] = Field(min_length=1)

    @classmethod
    def from_chunk(cls, chunk: Chunk, author: str, embedding: list[float]) -> EmbeddingRecord:
        return cls(author=author, embedding=embedding, **chunk.model_dump())

    @property
    def record_id(self) -> str:
        """Stable id: the same author, essay and position always map to one row."""
        key = f"{self.author}\x1f{self.essay_url}\x1f{self.chunk_index}"
        return hashlib.sha1(key.encode("utf-8")).hexdigest()

    def to_row(self) -> dict[str, Any]:
        """Row shape for the ``substack_embeddings`` table."""
        return {
            "author": self.author,
            "essay_title": self.essay_title,
            "essay_url": self.essay_url,
            "essay_date": self.essay_date,
            "content": self.content,
            "content_length": self.content_length,
            "content_tokens": self.content_tokens,
            "embedding": self.embedding,
        }
