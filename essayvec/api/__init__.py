"""HTTP API: ingestion progress stream and health check."""
