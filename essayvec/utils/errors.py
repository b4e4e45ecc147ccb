"""Custom exception hierarchy for essayvec.

All application exceptions inherit from :class:`EssayVecError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "chromadb", "supabase") caused the failure.

The hierarchy follows the ingestion stages:

    EssayVecError  (base -- catch-all for any essayvec error)
    +-- DiscoveryError           (sitemap / feed URL discovery)
    +-- ExtractionError          (fetching or parsing one article)
    +-- EmbeddingError           (embedding service call failed)
    |   +-- RateLimitError       (service asked us to slow down -- retryable)
    |   +-- QuotaExhaustedError  (billing / quota problem -- fatal to the run)
    +-- PersistenceError         (vector store clear / upsert failed)
    +-- ConfigurationError       (startup / missing or invalid config)
    +-- PipelineError            (orchestration failures)

Discovery, extraction and retryable embedding failures are absorbed into the
run ledger by the services; quota and persistence failures end the run.
"""


class EssayVecError(Exception):
    """Base exception for all essayvec errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets, e.g.
    ``[openai_embedding] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Discovery & extraction
# ---------------------------------------------------------------------------


class DiscoveryError(EssayVecError):
    """Raised when a URL discovery strategy cannot fetch or parse its index."""

    def __init__(
        self,
        message: str = "URL discovery failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(EssayVecError):
    """Raised when a single article cannot be fetched or has no content region."""

    def __init__(
        self,
        message: str = "Article extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Embedding service errors
# ---------------------------------------------------------------------------


class EmbeddingError(EssayVecError):
    """Raised when an embedding call fails for a reason worth retrying."""

    def __init__(
        self,
        message: str = "Embedding request failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(EmbeddingError):
    """Raised when the embedding service rate-limits us.

    Always retried with growing backoff, up to the rate-limit ceiling.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class QuotaExhaustedError(EmbeddingError):
    """Raised when the embedding account has no quota left.

    Never retried.  The embedding pipeline stops dispatching and the run
    ends with this error.
    """

    def __init__(
        self,
        message: str = "Embedding quota exhausted; check billing settings",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence, configuration, orchestration
# ---------------------------------------------------------------------------


class PersistenceError(EssayVecError):
    """Raised when the embedding store rejects a clear or upsert call."""

    def __init__(
        self,
        message: str = "Embedding store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ConfigurationError(EssayVecError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(EssayVecError):
    """Raised when pipeline orchestration fails."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
