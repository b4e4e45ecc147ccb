# =============================================================================
# essayvec/cli/ingest.py: CLI for ingesting a publication
# =============================================================================
#
# Subcommands:
#
#   ingest  discover, extract, chunk, embed and store every readable essay
#           of a publication; prints the run summary as JSON on stdout
#   scrape  discover, extract and chunk only; writes the JSON snapshot
#           and optionally one markdown file per essay
#
# Logs go to stderr so stdout stays machine-readable.
#
# Usage examples:
#   python -m essayvec.cli ingest --url https://example.substack.com
#   python -m essayvec.cli ingest --url https://example.substack.com --limit 3 --store supabase
#   python -m essayvec.cli scrape --url https://example.substack.com \
#       --output example.json --markdown-dir essays/
# =============================================================================

"""Standalone CLI for essay ingestion.

Usage::

    python -m essayvec.cli ingest --url https://example.substack.com

    python -m essayvec.cli scrape --url https://example.substack.com --output out.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

import httpx

from essayvec.config.loader import load_pipeline_config
from essayvec.config.settings import Settings
from essayvec.models.pipeline import PipelineConfig, ProgressEvent
from essayvec.pipeline.progress_tracker import ProgressTracker
from essayvec.utils.errors import ConfigurationError, EssayVecError
from essayvec.utils.logging import configure_logging, get_logger

_logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Factories (shared with essayvec.main)
# ---------------------------------------------------------------------------


def build_http_client(app_settings: Settings) -> httpx.AsyncClient:
    """Shared HTTP client for discovery, extraction and the Supabase store."""
    return httpx.AsyncClient(
        timeout=httpx.Timeout(app_settings.http_timeout),
        headers={
            "User-Agent": app_settings.http_user_agent,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
        follow_redirects=True,
    )


def build_embedding_provider(app_settings: Settings):  # noqa: ANN201
    """Return the OpenAI-compatible embedding provider, or ``None`` without a key."""
    from essayvec.providers.embedding.openai_embedding_provider import (
        OpenAIEmbeddingProvider,
    )

    provider = OpenAIEmbeddingProvider(settings=app_settings)
    return provider if provider.is_available() else None


def build_store(app_settings: Settings, http_client: httpx.AsyncClient, backend: str | None = None):  # noqa: ANN201
    """Construct the embedding store selected by *backend* or ``STORE_BACKEND``.

    ChromaDB is imported only when selected.
    """
    backend = (backend or app_settings.store_backend).lower()
    if backend == "chromadb":
        from essayvec.providers.store.chromadb_store import ChromaDBEmbeddingStore

        return ChromaDBEmbeddingStore(
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
        )
    if backend == "supabase":
        from essayvec.providers.store.supabase_store import SupabaseEmbeddingStore

        return SupabaseEmbeddingStore(
            supabase_url=app_settings.supabase_url,
            service_role_key=app_settings.supabase_service_role_key,
            table=app_settings.supabase_table,
            http_client=http_client,
        )
    raise ConfigurationError(f"Unknown store backend: {backend!r} (expected chromadb or supabase)")


def build_ingestion_service(
    app_settings: Settings,
    config: PipelineConfig,
    http_client: httpx.AsyncClient,
    progress_tracker: ProgressTracker | None = None,
    store_backend: str | None = None,
    embed: bool = True,
):  # noqa: ANN201
    """Wire discovery, extraction, chunking and (optionally) embedding.

    Returns
    -------
    tuple[IngestionService, str] or tuple[None, str]
        The service and a status message, or ``None`` and an error message
        when a required credential is missing.
    """
    from essayvec.providers.article.substack_extractor import SubstackExtractor
    from essayvec.providers.discovery.sitemap_discovery import SitemapDiscovery
    from essayvec.services.ingestion.chunker import SentenceChunker
    from essayvec.services.ingestion.embedding_pipeline import EmbeddingPipeline
    from essayvec.services.ingestion.ingestion_service import IngestionService

    pipeline = None
    status = "Embedding: disabled"
    if embed:
        embedding_provider = build_embedding_provider(app_settings)
        if embedding_provider is None:
            return None, "No embedding provider available.\nSet OPENAI_API_KEY (and optionally OPENAI_BASE_URL)."
        store = build_store(app_settings, http_client, store_backend)
        pipeline = EmbeddingPipeline(embedding_provider, store, config)
        status = f"Embedding: {embedding_provider.get_provider_name()} | Store: {store.get_provider_name()}"

    service = IngestionService(
        discovery=SitemapDiscovery(http_client=http_client, denylist=config.url_denylist),
        extractor=SubstackExtractor(http_client=http_client, plain_text=config.plain_text_mode),
        chunker=SentenceChunker(budget=config.chunk_token_budget, encoding_name=config.token_encoding),
        embedding_pipeline=pipeline,
        config=config,
        progress_tracker=progress_tracker,
    )
    return service, status


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _log_event(run_id: str, event: ProgressEvent) -> None:
    if event.type == "progress":
        _logger.info(
            "progress",
            phase=event.phase,
            current=event.current,
            total=event.total,
            title=event.title,
        )


async def _handle_ingest(args: argparse.Namespace, app_settings: Settings, config: PipelineConfig) -> int:
    tracker = ProgressTracker()
    async with build_http_client(app_settings) as http_client:
        try:
            service, status_msg = build_ingestion_service(
                app_settings, config, http_client, progress_tracker=tracker, store_backend=args.store
            )
        except EssayVecError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        if service is None:
            print(f"Error: {status_msg}", file=sys.stderr)
            return 1
        _logger.info("providers", status=status_msg)

        run_id = "cli"
        tracker.register_listener(run_id, _log_event)
        try:
            run = await service.run(args.url, run_id=run_id)
        except EssayVecError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    print(json.dumps(run.model_dump(mode="json"), indent=2))
    return 0


async def _handle_scrape(args: argparse.Namespace, app_settings: Settings, config: PipelineConfig) -> int:
    from essayvec.services.export import export_documents

    async with build_http_client(app_settings) as http_client:
        service, _ = build_ingestion_service(app_settings, config, http_client, embed=False)
        try:
            result = await service.scrape(args.url)
        except EssayVecError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1

    snapshot = json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False)
    if args.output:
        Path(args.output).write_text(snapshot, encoding="utf-8")
        _logger.info("snapshot_written", path=args.output, essays=len(result.essays))
    else:
        print(snapshot)

    if args.markdown_dir:
        written = export_documents(
            (essay.to_document() for essay in result.essays),
            args.markdown_dir,
            writer=result.author,
            plain_text=config.plain_text_mode,
        )
        _logger.info("markdown_exported", directory=args.markdown_dir, files=len(written))
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_common_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("--url", required=True, help="Publication root URL")
    sub.add_argument("--limit", type=int, default=None, help="Process at most N essays (development cap)")
    sub.add_argument(
        "--plain-text",
        action="store_true",
        dest="plain_text",
        help="Strip images, links and emphasis from essay text",
    )
    sub.add_argument("--config", default="config/config.yaml", help="YAML file with pipeline defaults")


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="essayvec",
        description="Turn a writer's published essays into stored embeddings.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Embed and store every essay of a publication")
    _add_common_arguments(ingest_parser)
    ingest_parser.add_argument(
        "--store",
        choices=["chromadb", "supabase"],
        default=None,
        help="Embedding store (default: STORE_BACKEND)",
    )

    # -- scrape --
    scrape_parser = subparsers.add_parser("scrape", help="Extract and chunk essays without embedding")
    _add_common_arguments(scrape_parser)
    scrape_parser.add_argument("--output", default=None, help="Write the JSON snapshot here (default: stdout)")
    scrape_parser.add_argument(
        "--markdown-dir",
        default=None,
        dest="markdown_dir",
        help="Also write one markdown file per essay under DIR/<writer>/",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level, json_output=(app_settings.app_env == "production"))

    try:
        config = load_pipeline_config(
            args.config,
            app_settings,
            document_limit=args.limit,
            plain_text_mode=True if args.plain_text else None,
        )
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command == "ingest":
        return asyncio.run(_handle_ingest(args, app_settings, config))
    return asyncio.run(_handle_scrape(args, app_settings, config))


if __name__ == "__main__":
    sys.exit(main())
