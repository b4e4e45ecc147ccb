"""Embedding store implementations.

ChromaDB is imported lazily by callers that select it (``store_backend``),
so the Supabase backend works without loading chromadb.
"""

from essayvec.providers.store.supabase_store import SupabaseEmbeddingStore

__all__ = ["SupabaseEmbeddingStore"]
