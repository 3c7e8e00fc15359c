"""
DocumentStore — best-effort single-document upsert into Firestore.

Single Responsibility: write one JSON payload to one document through the
Firestore REST API. Never raises for an unreachable or unconfigured
store; the returned ``WriteResult`` says which mode happened so callers
and tests can tell a real write from a degraded no-op.

Usage::

    store = DocumentStore.from_settings(settings)
    result = await store.upsert("configs/def", {"a": 1})
    # result.mode == WriteMode.SUCCEEDED  or  WriteMode.DEGRADED
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from bi_dashboards.core.config import Settings

logger = logging.getLogger(__name__)

_FIRESTORE_URL = (
    "https://firestore.googleapis.com/v1/projects/{project}"
    "/databases/(default)/documents/{reference}"
)


class WriteMode(str, Enum):
    SUCCEEDED = "succeeded"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class WriteResult:
    mode: WriteMode
    reference: str
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.mode is WriteMode.SUCCEEDED


# ── Firestore value encoding ─────────────────────────────────────

def encode_value(value: Any) -> Dict[str, Any]:
    """Encode a JSON-compatible Python value as a Firestore ``Value``."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, (list, tuple)):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    return {"stringValue": str(value)}


def encode_fields(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {str(key): encode_value(val) for key, val in payload.items()}


# ── Store ────────────────────────────────────────────────────────

class DocumentStore:
    """
    Firestore writer for configuration snapshots.

    Without a project id the store is *unavailable*: every upsert logs
    a warning and returns a DEGRADED result without any network call.
    """

    def __init__(
        self,
        project_id: str = "",
        api_key: str = "",
        timeout: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._project_id = project_id
        self._api_key = api_key
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "DocumentStore":
        return cls(
            project_id=settings.FIRESTORE_PROJECT_ID,
            api_key=settings.FIRESTORE_API_KEY,
            timeout=settings.FIRESTORE_TIMEOUT,
            transport=transport,
        )

    @property
    def available(self) -> bool:
        return bool(self._project_id)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def upsert(self, reference: str, payload: Dict[str, Any]) -> WriteResult:
        """
        Create or overwrite the document at ``reference`` (``collection/doc``).
        """
        if not self.available:
            logger.warning(
                "[DocumentStore] Firestore not configured; "
                f"skipping write to '{reference}'"
            )
            return WriteResult(WriteMode.DEGRADED, reference, "store not configured")

        url = _FIRESTORE_URL.format(project=self._project_id, reference=reference)
        params = {"key": self._api_key} if self._api_key else None

        try:
            response = await self._http.patch(
                url, params=params, json={"fields": encode_fields(payload)},
            )
        except httpx.HTTPError as exc:
            return self._degraded(reference, f"Connection failed: {exc}")

        if response.status_code >= 400:
            return self._degraded(
                reference, f"HTTP {response.status_code}: {response.text[:200]}",
            )

        logger.info(f"[DocumentStore] Wrote document '{reference}'")
        return WriteResult(WriteMode.SUCCEEDED, reference)

    @staticmethod
    def _degraded(reference: str, error: str) -> WriteResult:
        logger.warning(
            f"[DocumentStore] Write to '{reference}' failed, continuing without it: {error}"
        )
        return WriteResult(WriteMode.DEGRADED, reference, error)
