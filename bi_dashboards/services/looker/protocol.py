"""
BIClient — the capability interface the dashboard workflow consumes.

``LookerClient`` is the production implementation; tests pass any object
with the same coroutine methods. Every method either returns the parsed
entity or raises ``WorkflowError`` (kind UPSTREAM) — there is no
partial-success return value.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from bi_dashboards.models.looker import (
    Dashboard,
    DashboardElement,
    DashboardFilter,
    Folder,
    LookmlExplore,
    Query,
    User,
)

QueryRows = List[Dict[str, Any]]


class BIClient(Protocol):

    async def me(self) -> User: ...

    # ── Folders ──────────────────────────────────────────────

    async def search_folders(
        self,
        name: Optional[str] = None,
        parent_id: Optional[str] = None,
        fields: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> List[Folder]: ...

    async def create_folder(self, name: str, parent_id: str) -> Folder: ...

    # ── Dashboards ───────────────────────────────────────────

    async def search_dashboards(
        self,
        folder_id: Optional[str] = None,
        title: Optional[str] = None,
        fields: Optional[str] = None,
        per_page: Optional[int] = None,
    ) -> List[Dashboard]: ...

    async def all_dashboards(self, fields: Optional[str] = None) -> List[Dashboard]: ...

    async def dashboard(self, dashboard_id: str) -> Dashboard: ...

    async def copy_dashboard(self, dashboard_id: str, folder_id: str) -> Dashboard: ...

    async def update_dashboard(
        self, dashboard_id: str, body: Dict[str, Any],
    ) -> Dashboard: ...

    # ── Elements ─────────────────────────────────────────────

    async def dashboard_dashboard_elements(
        self, dashboard_id: str,
    ) -> List[DashboardElement]: ...

    async def update_dashboard_element(
        self, element_id: str, body: Dict[str, Any],
    ) -> DashboardElement: ...

    # ── Queries ──────────────────────────────────────────────

    async def query(self, query_id: str) -> Query: ...

    async def create_query(self, body: Dict[str, Any]) -> Query: ...

    async def run_query(self, query_id: str, result_format: str = "json") -> QueryRows: ...

    # ── Dashboard filters ────────────────────────────────────

    async def create_dashboard_filter(self, body: Dict[str, Any]) -> DashboardFilter: ...

    async def update_dashboard_filter(
        self, filter_id: str, body: Dict[str, Any],
    ) -> DashboardFilter: ...

    async def delete_dashboard_filter(self, filter_id: str) -> None: ...

    # ── LookML ───────────────────────────────────────────────

    async def lookml_model_explore(
        self, model_name: str, explore_name: str,
    ) -> LookmlExplore: ...
