"""
FastAPI dependencies — build a ``DashboardService`` per request.

The Looker client and document store are created once in the app
lifespan and live on ``app.state``; every request gets a fresh service
holding those handles and its own resolved ``WorkflowConfig``.

Usage in endpoints::

    @router.post("/api/dashboard/filters")
    async def dashboard_filters(
        body: DashboardIdRequest,
        service: DashboardService = Depends(get_service),
    ):
        ...
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Query, Request

from bi_dashboards.core.config import Settings
from bi_dashboards.core.errors import upstream_error
from bi_dashboards.services.dashboard import (
    DashboardService,
    parse_config_param,
    resolve_config,
)
from bi_dashboards.services.looker import BIClient
from bi_dashboards.services.storage import DocumentStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_client(request: Request) -> BIClient:
    """Dependency: the process-wide BI client."""
    client = getattr(request.app.state, "looker_client", None)
    if client is None:
        raise upstream_error("Looker client is not initialised")
    return client


def get_store(request: Request) -> Optional[DocumentStore]:
    return getattr(request.app.state, "document_store", None)


def get_service(
    config: Optional[str] = Query(
        None, description="JSON object overriding workflow defaults.",
    ),
    settings: Settings = Depends(get_settings),
    client: BIClient = Depends(get_client),
    store: Optional[DocumentStore] = Depends(get_store),
) -> DashboardService:
    """
    Dependency: a ``DashboardService`` configured from settings defaults
    with the ``config`` query parameter applied on top.
    """
    overrides = parse_config_param(config)
    workflow_config = resolve_config(settings.workflow_defaults(), overrides)
    return DashboardService(client, workflow_config, store)
