"""System endpoints — liveness and health."""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["system"])


@router.get("/", response_class=PlainTextResponse)
async def root():
    return "Dashboard Service is up and running!"


@router.get("/health")
async def health_check():
    """Basic liveness probe."""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}
