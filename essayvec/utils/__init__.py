"""Utility modules for essayvec.

- **errors** -- exception hierarchy rooted at EssayVecError.
- **logging** -- structlog setup (console in development, JSON in production).
- **concurrency** -- DispatchLimiter pacing and throttled_gather fan-out.
- **retry** -- bounded exponential-backoff retry for embedding calls.
"""

from essayvec.utils.concurrency import DispatchLimiter, throttled_gather
from essayvec.utils.errors import (
    ConfigurationError,
    DiscoveryError,
    EmbeddingError,
    EssayVecError,
    ExtractionError,
    PersistenceError,
    PipelineError,
    QuotaExhaustedError,
    RateLimitError,
)
from essayvec.utils.logging import configure_logging, get_logger
from essayvec.utils.retry import RetriesExhausted, RetryPolicy, retry_async

__all__ = [
    "ConfigurationError",
    "DiscoveryError",
    "DispatchLimiter",
    "EmbeddingError",
    "EssayVecError",
    "ExtractionError",
    "PersistenceError",
    "PipelineError",
    "QuotaExhaustedError",
    "RateLimitError",
    "RetriesExhausted",
    "RetryPolicy",
    "configure_logging",
    "get_logger",
    "retry_async",
    "throttled_gather",
]
