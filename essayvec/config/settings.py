"""Application settings loaded from environment variables via pydantic-settings.

Values come from (highest priority first) environment variables, then a
``.env`` file in the working directory, then the defaults below.  Field
``openai_api_key`` maps to env var ``OPENAI_API_KEY`` and so on.

Credentials stay here and are handed to provider constructors explicitly.
Pipeline tunables are also settable from the environment but reach the
pipeline only through :class:`~essayvec.models.pipeline.PipelineConfig`
(see :func:`essayvec.config.loader.load_pipeline_config`).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """essayvec settings.

    Environment variables override defaults.  Loaded from .env when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding service ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint; empty = api.openai.com
    openai_embedding_model: str = "text-embedding-ada-002"
    embedding_dimension: int = 1536

    # === Embedding store ===
    store_backend: str = "chromadb"  # "chromadb" or "supabase"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "substack_embeddings"
    supabase_url: str = ""
    supabase_service_role_key: str = ""
    supabase_table: str = "substack_embeddings"

    # === HTTP ===
    http_timeout: float = 10.0
    http_user_agent: str = "Mozilla/5.0 (compatible; essayvec/0.1)"

    # === Pipeline tunables (see PipelineConfig for meaning) ===
    chunk_token_budget: int = 200
    token_encoding: str = "cl100k_base"
    max_concurrent_embeddings: int = 3
    dispatch_interval: float = 0.5
    max_retries: int = 3
    rate_limit_max_retries: int = 8
    retry_base_delay: float = 1.0
    retry_multiplier: float = 2.0
    retry_max_delay: float = 120.0
    upsert_batch_size: int = 5
    extraction_concurrency: int = 1
    document_limit: int = 0
    plain_text_mode: bool = False
    url_denylist: list[str] = ["about", "archive", "podcast"]

    # === App ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def missing_credentials(self) -> list[str]:
        """Return env var names the configured backends need but lack."""
        missing: list[str] = []
        if not self.openai_api_key:
            missing.append("OPENAI_API_KEY")
        if self.store_backend == "supabase":
            if not self.supabase_url:
                missing.append("SUPABASE_URL")
            if not self.supabase_service_role_key:
                missing.append("SUPABASE_SERVICE_ROLE_KEY")
        return missing
