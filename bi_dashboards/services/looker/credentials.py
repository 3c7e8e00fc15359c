"""
Looker API credentials — resolved once at startup.

Two sources, in order:
  1. ``LOOKER_CLIENT_ID`` / ``LOOKER_CLIENT_SECRET`` from settings.
  2. A remote JSON config at ``LOOKER_CONFIG_URL`` exposing
     ``LOOKERSDK_CLIENT_ID`` / ``LOOKERSDK_CLIENT_SECRET`` (Cloud Run
     config service).

Usage::

    credentials = await resolve_credentials(settings)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from bi_dashboards.core.config import Settings
from bi_dashboards.core.errors import upstream_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookerCredentials:
    """API3 client id/secret pair."""
    client_id: str
    client_secret: str

    @property
    def is_complete(self) -> bool:
        return bool(self.client_id and self.client_secret)


async def resolve_credentials(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> LookerCredentials:
    """
    Return credentials from settings, falling back to the config URL.

    Raises:
        WorkflowError: the config URL answered with an error or the
            request itself failed.
    """
    if settings.LOOKER_CLIENT_ID:
        return LookerCredentials(
            settings.LOOKER_CLIENT_ID, settings.LOOKER_CLIENT_SECRET,
        )

    if not settings.LOOKER_CONFIG_URL:
        logger.warning(
            "[Credentials] Neither LOOKER_CLIENT_ID nor LOOKER_CONFIG_URL is set; "
            "Looker calls will fail to authenticate"
        )
        return LookerCredentials("", "")

    try:
        async with httpx.AsyncClient(
            timeout=settings.LOOKER_TIMEOUT, transport=transport,
        ) as client:
            response = await client.get(settings.LOOKER_CONFIG_URL)
    except httpx.HTTPError as exc:
        raise upstream_error(f"Failed to fetch config: {exc}") from exc

    if response.status_code >= 400:
        raise upstream_error(
            f"Failed to fetch config: HTTP {response.status_code}",
            upstream_status=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as exc:
        raise upstream_error("Failed to fetch config: invalid JSON") from exc
    if not isinstance(data, dict):
        raise upstream_error("Failed to fetch config: invalid JSON")

    logger.info("[Credentials] Loaded Looker credentials from config URL")
    return LookerCredentials(
        str(data.get("LOOKERSDK_CLIENT_ID") or ""),
        str(data.get("LOOKERSDK_CLIENT_SECRET") or ""),
    )
