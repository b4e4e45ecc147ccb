"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible endpoints via a custom
``base_url``.

The SDK's own retry loop is switched off (``max_retries=0``); the embedding
pipeline owns retries and needs every failure classified:

* HTTP 429 carrying ``insufficient_quota`` -> :class:`QuotaExhaustedError`
* any other HTTP 429 -> :class:`RateLimitError`
* everything else -> :class:`EmbeddingError`
"""

from __future__ import annotations

from typing import Any

import openai
import structlog

from essayvec.config.settings import Settings
from essayvec.interfaces.embedding_provider import IEmbeddingProvider
from essayvec.utils.errors import EmbeddingError, QuotaExhaustedError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_QUOTA_CODE = "insufficient_quota"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


def is_quota_error(exc: openai.APIStatusError) -> bool:
    """Return ``True`` when a 429 means the account is out of quota."""
    if _QUOTA_CODE in (getattr(exc, "code", None), getattr(exc, "type", None)):
        return True
    body: Any = exc.body
    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict) and _QUOTA_CODE in (error.get("code"), error.get("type")):
            return True
    return False


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-ada-002`` (1536 dims) by default, matching the
    ``vector(1536)`` column of the ``substack_embeddings`` table.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "max_retries": 0,
            "timeout": settings.http_timeout * 3,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_embedding_model or "text-embedding-ada-002"
        self._dimension = _MODEL_DIMENSIONS.get(self._model, settings.embedding_dimension)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""
        try:
            response = await self._client.embeddings.create(input=text, model=self._model)
        except openai.RateLimitError as exc:
            if is_quota_error(exc):
                raise QuotaExhaustedError(
                    message=f"{self._provider_label} quota exhausted: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc
            raise RateLimitError(
                message=f"{self._provider_label} rate limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not response.data:
            raise EmbeddingError(
                message=f"{self._provider_label} returned no embedding",
                provider_name=self.get_provider_name(),
            )

        vector = list(response.data[0].embedding)
        if len(vector) != self._dimension:
            raise EmbeddingError(
                message=(
                    f"{self._provider_label} returned a {len(vector)}-dim vector, "
                    f"expected {self._dimension}"
                ),
                provider_name=self.get_provider_name(),
            )

        logger.debug(
            "openai_embedding_created",
            model=self._model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return vector

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
