"""Supabase embedding store adapter (PostgREST over httpx).

Writes to the ``substack_embeddings`` table that the read-side
``match_substack_embeddings`` similarity function queries.  Talks to the
PostgREST endpoint directly with the service-role key:

* ``clear``  -> ``DELETE /rest/v1/<table>?author=eq.<author>``
* ``upsert`` -> ``POST /rest/v1/<table>`` with a JSON array of rows

A POST of several rows is a single statement, so each ``upsert`` call is
atomic.  Errors are not retried here.
"""

from __future__ import annotations

import httpx
import structlog

from essayvec.interfaces.embedding_store import IEmbeddingStore
from essayvec.models.rag import EmbeddingRecord
from essayvec.utils.errors import ConfigurationError, PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0


def _deleted_count(response: httpx.Response) -> int:
    """Parse the total from a ``Content-Range: */3`` style header."""
    content_range = response.headers.get("content-range", "")
    total = content_range.rsplit("/", 1)[-1]
    return int(total) if total.isdigit() else 0


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or response.text
    return response.text


class SupabaseEmbeddingStore(IEmbeddingStore):
    """Embedding store backed by a Supabase Postgres table."""

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        table: str = "substack_embeddings",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not supabase_url or not service_role_key:
            raise ConfigurationError(
                "SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required",
                provider_name="supabase",
            )
        self._endpoint = f"{supabase_url.rstrip('/')}/rest/v1/{table}"
        self._key = service_role_key
        self._table = table
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(_DEFAULT_TIMEOUT))

    def _headers(self, prefer: str) -> dict[str, str]:
        return {
            "apikey": self._key,
            "Authorization": f"Bearer {self._key}",
            "Content-Type": "application/json",
            "Prefer": prefer,
        }

    # ------------------------------------------------------------------
    # IEmbeddingStore implementation
    # ------------------------------------------------------------------

    async def clear(self, author: str) -> int:
        try:
            response = await self._client.delete(
                self._endpoint,
                params={"author": f"eq.{author}"},
                headers=self._headers("count=exact"),
            )
        except httpx.HTTPError as exc:
            raise PersistenceError(
                message=f"Supabase clear failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.is_error:
            raise PersistenceError(
                message=f"Supabase clear failed (HTTP {response.status_code}): {_error_detail(response)}",
                provider_name=self.get_provider_name(),
            )

        count = _deleted_count(response)
        logger.info("supabase_clear_author", author=author, table=self._table, deleted_count=count)
        return count

    async def upsert(self, records: list[EmbeddingRecord]) -> int:
        if not records:
            return 0

        try:
            response = await self._client.post(
                self._endpoint,
                json=[r.to_row() for r in records],
                headers=self._headers("return=minimal"),
            )
        except httpx.HTTPError as exc:
            raise PersistenceError(
                message=f"Supabase insert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.is_error:
            raise PersistenceError(
                message=f"Supabase insert failed (HTTP {response.status_code}): {_error_detail(response)}",
                provider_name=self.get_provider_name(),
            )

        logger.info("supabase_upsert", table=self._table, count=len(records))
        return len(records)

    def get_provider_name(self) -> str:
        return "supabase"

    def is_available(self) -> bool:
        return bool(self._endpoint and self._key)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
