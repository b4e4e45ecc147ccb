"""Adapters for the external services the pipeline talks to.

Each sub-package implements one interface from :mod:`essayvec.interfaces`:

    discovery/  -- IUrlDiscovery      (sitemap.xml, feed fallback)
    article/    -- IArticleExtractor  (Substack post pages)
    embedding/  -- IEmbeddingProvider (OpenAI-compatible embeddings API)
    store/      -- IEmbeddingStore    (ChromaDB, Supabase)
"""
