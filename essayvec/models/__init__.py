"""essayvec domain models.

- essay.py    -- SourceDescriptor, DiscoveryResult, Document
- rag.py      -- Chunk, EmbeddingRecord
- pipeline.py -- PipelineConfig, PipelineRun ledger, ProgressEvent, scrape snapshot
"""

from essayvec.models.essay import DiscoveryResult, Document, SourceDescriptor
from essayvec.models.pipeline import (
    EssaySnapshot,
    ExtractionFailure,
    FailedChunk,
    PipelineConfig,
    PipelineRun,
    ProgressEvent,
    ScrapeResult,
)
from essayvec.models.rag import Chunk, EmbeddingRecord

__all__ = [
    "Chunk",
    "DiscoveryResult",
    "Document",
    "EmbeddingRecord",
    "EssaySnapshot",
    "ExtractionFailure",
    "FailedChunk",
    "PipelineConfig",
    "PipelineRun",
    "ProgressEvent",
    "ScrapeResult",
    "SourceDescriptor",
]
