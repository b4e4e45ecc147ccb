"""essayvec FastAPI application entry point.

Wires the ingestion service and routes together.  Loads configuration from
``.env`` and ``config/config.yaml`` and configures structured logging.
Providers are built by the same factories the CLI uses
(:mod:`essayvec.cli.ingest`).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from essayvec import __version__
from essayvec.api.routes import router as api_router
from essayvec.cli.ingest import build_http_client, build_ingestion_service
from essayvec.config.loader import load_pipeline_config
from essayvec.config.settings import Settings
from essayvec.pipeline.progress_tracker import ProgressTracker
from essayvec.utils.errors import ConfigurationError
from essayvec.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every long-lived component for ``app.state``."""
    config = load_pipeline_config(settings=app_settings)
    http_client = build_http_client(app_settings)
    progress_tracker = ProgressTracker()

    service, status_msg = build_ingestion_service(
        app_settings,
        config,
        http_client,
        progress_tracker=progress_tracker,
    )
    if service is None:
        raise ConfigurationError(status_msg)

    return {
        "http_client": http_client,
        "progress_tracker": progress_tracker,
        "ingestion_service": service,
        "pipeline_config": config,
        "provider_registry": {
            "embedding": bool(app_settings.openai_api_key),
            "store": not [m for m in app_settings.missing_credentials() if m != "OPENAI_API_KEY"],
        },
        "provider_status": status_msg,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise providers and services on startup, clean up on shutdown."""
    app_settings: Settings = application.state.settings
    components = _build_all(app_settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    _logger.info(
        "app_startup",
        version=__version__,
        environment=app_settings.app_env,
        providers=components["provider_status"],
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build and configure the FastAPI application."""
    app_settings = app_settings or Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    application = FastAPI(
        title="essayvec API",
        version=__version__,
        description="Ingest a writer's published essays into a vector store and stream progress.",
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    application.include_router(api_router)
    return application


def run() -> None:
    """Serve the API with uvicorn."""
    app_settings = Settings()
    uvicorn.run(
        "essayvec.main:create_app",
        factory=True,
        host=app_settings.app_host,
        port=app_settings.app_port,
        reload=(app_settings.app_env == "development"),
    )


if __name__ == "__main__":
    run()
