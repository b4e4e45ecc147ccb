"""Essay ingestion pipeline: **discover -> extract -> chunk -> embed -> store**.

1. **Discover** (providers/discovery) -- sitemap.xml, falling back to the
   recency-limited feed.
2. **Extract** (providers/article) -- one Document per readable post;
   paywalled posts are dropped.
3. **Chunk** (chunker.py / SentenceChunker) -- sentence-packed chunks of at
   most ``chunk_token_budget`` tokens.
4. **Embed + store** (embedding_pipeline.py / EmbeddingPipeline) -- bounded,
   paced, retrying embedding calls; records written in small batches after
   the author's previous records are cleared.

IngestionService (ingestion_service.py) runs the stages and publishes
progress events.
"""

from essayvec.services.ingestion.chunker import SentenceChunker
from essayvec.services.ingestion.embedding_pipeline import EmbeddingPipeline
from essayvec.services.ingestion.ingestion_service import IngestionService

__all__ = [
    "EmbeddingPipeline",
    "IngestionService",
    "SentenceChunker",
]
