"""
LookerClient — Async Looker API 4.0 client over httpx.

Single Responsibility: authenticate, send one HTTP call per method and
narrow the JSON response into ``bi_dashboards.models.looker`` entities.
No workflow logic, no caching, no retries.

Handles:
  - API3 login (client id/secret → access token), refreshed on expiry.
  - Timeout and SSL verification from settings.
  - Structured error results internally; a failed call surfaces to the
    caller as ``WorkflowError`` (kind UPSTREAM).

Usage::

    client = LookerClient.from_settings(settings, credentials)
    me = await client.me()
    await client.aclose()
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from bi_dashboards.core.config import Settings
from bi_dashboards.core.errors import upstream_error
from bi_dashboards.models.looker import (
    Dashboard,
    DashboardElement,
    DashboardFilter,
    Folder,
    LookmlExplore,
    Query,
    User,
)
from bi_dashboards.services.looker.credentials import LookerCredentials
from bi_dashboards.services.looker.protocol import QueryRows

logger = logging.getLogger(__name__)

# Reusable result type
APIResult = Dict[str, Any]

# Refresh the token this many seconds before Looker expires it
_TOKEN_MARGIN_SECONDS = 60

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], data: Any) -> ModelT:
    """Narrow a JSON body into ``model``; a shape mismatch is an upstream failure."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        logger.error(f"[LookerClient] Unexpected {model.__name__} payload: {exc}")
        raise upstream_error(f"Unexpected {model.__name__} response from Looker API") from exc


def _parse_list(model: Type[ModelT], data: Any) -> List[ModelT]:
    if data is not None and not isinstance(data, list):
        raise upstream_error(f"Expected a list of {model.__name__} from Looker API")
    return [_parse(model, item) for item in data or []]


class LookerClient:
    """
    Looker API client bound to one base URL and one set of credentials.

    Holds a single ``httpx.AsyncClient`` for the process lifetime; built
    once in the FastAPI lifespan and injected into every request.
    """

    def __init__(
        self,
        api_url: str,
        credentials: LookerCredentials,
        timeout: int = 60,
        verify_ssl: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credentials = credentials
        self._http = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            timeout=timeout,
            verify=verify_ssl,
            transport=transport,
        )
        self._token: Optional[str] = None
        self._token_expires_at = 0.0
        self._login_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        credentials: LookerCredentials,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "LookerClient":
        return cls(
            settings.looker_api_url,
            credentials,
            timeout=settings.LOOKER_TIMEOUT,
            verify_ssl=settings.LOOKER_VERIFY_SSL,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    # ─────────────────────────────────────────────────────────
    #  USER
    # ─────────────────────────────────────────────────────────

    async def me(self) -> User:
        data = await self._call("GET", "/user")
        return _parse(User, data)

    # ─────────────────────────────────────────────────────────
    #  FOLDERS
    # ─────────────────────────────────────────────────────────

    async def search_folders(
        self,
        name: Optional[str] = None,
        parent_id: Optional[str] = None,
        fields: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> List[Folder]:
        data = await self._call(
            "GET",
            "/folders/search",
            params={
                "name": name,
                "parent_id": parent_id,
                "fields": fields,
                "per_page": per_page,
            },
        )
        return _parse_list(Folder, data)

    async def create_folder(self, name: str, parent_id: str) -> Folder:
        data = await self._call(
            "POST", "/folders", json={"name": name, "parent_id": parent_id},
        )
        return _parse(Folder, data)

    # ─────────────────────────────────────────────────────────
    #  DASHBOARDS
    # ─────────────────────────────────────────────────────────

    async def search_dashboards(
        self,
        folder_id: Optional[str] = None,
        title: Optional[str] = None,
        fields: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> List[Dashboard]:
        data = await self._call(
            "GET",
            "/dashboards/search",
            params={
                "folder_id": folder_id,
                "title": title,
                "fields": fields,
                "per_page": per_page,
            },
        )
        return _parse_list(Dashboard, data)

    async def all_dashboards(self, fields: Optional[str] = None) -> List[Dashboard]:
        data = await self._call("GET", "/dashboards", params={"fields": fields})
        return _parse_list(Dashboard, data)

    async def dashboard(self, dashboard_id: str) -> Dashboard:
        data = await self._call("GET", f"/dashboards/{dashboard_id}")
        return _parse(Dashboard, data)

    async def copy_dashboard(self, dashboard_id: str, folder_id: str) -> Dashboard:
        data = await self._call(
            "POST",
            f"/dashboards/{dashboard_id}/copy",
            params={"folder_id": folder_id},
        )
        return _parse(Dashboard, data)

    async def update_dashboard(
        self, dashboard_id: str, body: Dict[str, Any],
    ) -> Dashboard:
        data = await self._call("PATCH", f"/dashboards/{dashboard_id}", json=body)
        return _parse(Dashboard, data)

    # ─────────────────────────────────────────────────────────
    #  DASHBOARD ELEMENTS
    # ─────────────────────────────────────────────────────────

    async def dashboard_dashboard_elements(
        self, dashboard_id: str,
    ) -> List[DashboardElement]:
        data = await self._call(
            "GET", f"/dashboards/{dashboard_id}/dashboard_elements",
        )
        return _parse_list(DashboardElement, data)

    async def update_dashboard_element(
        self, element_id: str, body: Dict[str, Any],
    ) -> DashboardElement:
        data = await self._call(
            "PATCH", f"/dashboard_elements/{element_id}", json=body,
        )
        return _parse(DashboardElement, data)

    # ─────────────────────────────────────────────────────────
    #  QUERIES
    # ─────────────────────────────────────────────────────────

    async def query(self, query_id: str) -> Query:
        data = await self._call("GET", f"/queries/{query_id}")
        return _parse(Query, data)

    async def create_query(self, body: Dict[str, Any]) -> Query:
        data = await self._call("POST", "/queries", json=body)
        return _parse(Query, data)

    async def run_query(self, query_id: str, result_format: str = "json") -> QueryRows:
        data = await self._call("GET", f"/queries/{query_id}/run/{result_format}")
        return data if isinstance(data, list) else []

    # ─────────────────────────────────────────────────────────
    #  DASHBOARD FILTERS
    # ─────────────────────────────────────────────────────────

    async def create_dashboard_filter(self, body: Dict[str, Any]) -> DashboardFilter:
        data = await self._call("POST", "/dashboard_filters", json=body)
        return _parse(DashboardFilter, data)

    async def update_dashboard_filter(
        self, filter_id: str, body: Dict[str, Any],
    ) -> DashboardFilter:
        data = await self._call("PATCH", f"/dashboard_filters/{filter_id}", json=body)
        return _parse(DashboardFilter, data)

    async def delete_dashboard_filter(self, filter_id: str) -> None:
        await self._call("DELETE", f"/dashboard_filters/{filter_id}")

    # ─────────────────────────────────────────────────────────
    #  LOOKML
    # ─────────────────────────────────────────────────────────

    async def lookml_model_explore(
        self, model_name: str, explore_name: str,
    ) -> LookmlExplore:
        data = await self._call(
            "GET", f"/lookml_models/{model_name}/explores/{explore_name}",
        )
        return _parse(LookmlExplore, data)

    # ─────────────────────────────────────────────────────────
    #  INTERNAL HELPERS
    # ─────────────────────────────────────────────────────────

    async def _call(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Send one authenticated call and return its JSON body, or raise."""
        token = await self._ensure_token()
        result = await self._send(
            method,
            path,
            params=params,
            json=json,
            headers={"Authorization": f"token {token}"},
        )
        return self._ok(result)

    async def _ensure_token(self) -> str:
        """Return a valid access token, logging in when missing or expired."""
        async with self._login_lock:
            if self._token and time.monotonic() < self._token_expires_at:
                return self._token

            if not self._credentials.is_complete:
                raise upstream_error("Looker credentials are not configured")

            result = await self._send(
                "POST",
                "/login",
                data={
                    "client_id": self._credentials.client_id,
                    "client_secret": self._credentials.client_secret,
                },
            )
            data = self._ok(result)
            if not isinstance(data, dict) or not data.get("access_token"):
                raise upstream_error("Looker login returned no access token")
            self._token = data["access_token"]
            expires_in = int(data.get("expires_in") or 3600)
            self._token_expires_at = (
                time.monotonic() + max(expires_in - _TOKEN_MARGIN_SECONDS, 0)
            )
            logger.info("[LookerClient] Authenticated against Looker API")
            return self._token

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> APIResult:
        """
        Execute a single HTTP request.

        Returns:
            ``{"ok": True, "data": ..., "status": int}``
            or ``{"ok": False, "error": str, "status": int}``
        """
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        label = f"{method} {path}"

        try:
            response = await self._http.request(
                method,
                path,
                params=clean_params or None,
                json=json,
                data=data,
                headers=headers,
            )
        except httpx.TimeoutException:
            return self._error_result(label, "Timeout calling Looker API", 0)
        except httpx.HTTPError as exc:
            return self._error_result(label, f"Connection failed: {exc}", 0)

        if response.status_code >= 400:
            return self._error_result(
                label,
                self._error_message(response),
                response.status_code,
            )

        try:
            body = response.json() if response.content else None
        except ValueError as exc:
            return self._error_result(
                label, f"Invalid JSON response: {exc}", response.status_code,
            )
        return {"ok": True, "data": body, "status": response.status_code}

    @staticmethod
    def _ok(result: APIResult) -> Any:
        """Unwrap a successful result or raise its error."""
        if not result["ok"]:
            raise upstream_error(result["error"], upstream_status=result["status"] or None)
        return result["data"]

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer Looker's ``message`` field over the raw body."""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
        return f"HTTP {response.status_code}: {response.text[:200]}"

    @staticmethod
    def _error_result(label: str, error: str, status: int) -> APIResult:
        """Build a standardized error result dict."""
        logger.error(f"[LookerClient] {label}: {error}")
        return {"ok": False, "error": error, "status": status, "data": None}
