"""
FastAPI application factory + lifespan.

This is the BI dashboard facade:
- REST API for dashboard copy, customization and tile data.
- Looker client and Firestore writer built once at startup and injected
  into every request through ``app.state``.
- Uniform ``{"success": false, "error": ...}`` envelope for every failure.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bi_dashboards.api.v1 import api_router
from bi_dashboards.core.config import Settings, get_settings
from bi_dashboards.core.errors import WorkflowError
from bi_dashboards.core.logging import configure_logging
from bi_dashboards.services.looker import BIClient, LookerClient, resolve_credentials
from bi_dashboards.services.storage import DocumentStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: configure logging, build the Looker client and document store
    unless they were injected.
    Shutdown: close the HTTP clients this lifespan created.
    """
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info(f"Starting {settings.APP_NAME} ({settings.APP_ENV})")

    owned = []
    if app.state.looker_client is None:
        credentials = await resolve_credentials(settings)
        app.state.looker_client = LookerClient.from_settings(settings, credentials)
        owned.append(app.state.looker_client)
    if app.state.document_store is None:
        app.state.document_store = DocumentStore.from_settings(settings)
        owned.append(app.state.document_store)
        if not app.state.document_store.available:
            logger.warning("Firestore not configured; snapshot writes will be skipped")

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")
    for resource in owned:
        await resource.aclose()


# ── Exception handlers ───────────────────────────────────────────

async def _workflow_error_handler(request: Request, exc: WorkflowError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


async def _validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
        for err in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": f"Invalid request: {details}"},
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"{request.method} {request.url.path} crashed")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc) or "Internal Server Error"},
    )


def create_app(
    settings: Optional[Settings] = None,
    client: Optional[BIClient] = None,
    store: Optional[DocumentStore] = None,
) -> FastAPI:
    """Application factory for FastAPI."""
    settings = settings or get_settings()

    app = FastAPI(
        title="BI Dashboards API",
        description="Dashboard copy and customization over the Looker API",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
    )
    app.state.settings = settings
    app.state.looker_client = client
    app.state.document_store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WorkflowError, _workflow_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(api_router)
    return app


# Module-level instance for ``uvicorn bi_dashboards.main:app``
app = create_app()
