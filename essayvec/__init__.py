"""essayvec -- turn a writer's published essays into stored vector embeddings.

Pipeline: discover article URLs -> extract and normalize each article ->
split into token-bounded chunks -> embed under rate limits -> upsert into a
vector store, reporting progress along the way.
"""

__version__ = "0.1.0"
