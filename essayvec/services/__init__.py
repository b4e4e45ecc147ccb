"""Service layer: ingestion orchestration and markdown export."""
