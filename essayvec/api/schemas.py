"""Response models for the HTTP API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class RunStatusResponse(BaseModel):
    """Latest progress event published for one ingestion run."""

    run_id: str
    status: dict[str, Any]
