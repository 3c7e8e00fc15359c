"""
Dashboard endpoints — copy, locate, customize and read dashboards.

Routes:
  POST /api/dashboard/tiles-with-results → re-run data tiles with filters
  POST /api/dashboard/copy               → idempotent copy into a folder
  POST /api/dashboard/find               → locate by folder path + title
  PUT  /api/dashboard/update             → rewrite tile columns + filters
  POST /api/dashboard/defaults           → tile columns + filter name map
  POST /api/dashboard/save-copy          → copy under a new, unused name
  POST /api/dashboard/filters            → dashboard filters (public shape)
"""

from __future__ import annotations

import json
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from bi_dashboards.api.v1.dependencies import get_service
from bi_dashboards.api.v1.schemas import (
    CopyDashboardRequest,
    DashboardIdRequest,
    FindDashboardRequest,
    SaveCopyRequest,
    UpdateDashboardRequest,
)
from bi_dashboards.core.errors import validation_error
from bi_dashboards.services.dashboard import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


# ── Helpers ──────────────────────────────────────────────────────

def _final_filters(request: Request) -> Dict[str, Any]:
    """
    Filters for tile re-runs.

    Either a JSON object in the ``filters`` query parameter, or every
    other query parameter except ``config`` taken as ``field=value``.
    """
    raw = request.query_params.get("filters")
    if raw:
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            raise validation_error("Invalid filters format. Must be valid JSON string") from exc
        if not isinstance(parsed, dict):
            raise validation_error("Invalid filters format. Must be valid JSON string")
        return parsed

    return {
        key: value for key, value in request.query_params.items()
        if key != "config"
    }


# ── Endpoints ────────────────────────────────────────────────────

@router.post("/tiles-with-results")
async def tiles_with_results(
    body: DashboardIdRequest,
    request: Request,
    service: DashboardService = Depends(get_service),
):
    if not body.dashboardId:
        raise validation_error("dashboardId parameter is required")

    final_filters = _final_filters(request)
    result = await service.get_dashboard_tiles_with_results(body.dashboardId, final_filters)
    return {"success": True, **result}


@router.post("/copy")
async def copy_dashboard(
    body: CopyDashboardRequest,
    service: DashboardService = Depends(get_service),
):
    if not body.originalDashboardId or not body.userDashboardFolderId:
        raise validation_error(
            "Both originalDashboardId and userDashboardFolderId are required in the request body"
        )
    if not body.originalDashboardCopyTitle:
        raise validation_error("originalDashboardCopyTitle is required in the request body")

    dashboard_id = await service.ensure_dashboard_copy_in_folder(
        body.originalDashboardId,
        body.userDashboardFolderId,
        body.originalDashboardCopyTitle,
    )
    return {"success": True, "dashboardId": dashboard_id}


@router.post("/find")
async def find_dashboard(
    body: FindDashboardRequest,
    service: DashboardService = Depends(get_service),
):
    if not body.path or not body.originalDashboardName:
        raise validation_error(
            "Both path and originalDashboardName are required in the request body"
        )

    dashboard_id = await service.find_dashboard_in_nested_path(
        body.path, body.originalDashboardName,
    )
    return {"success": True, "dashboardId": dashboard_id}


@router.put("/update")
async def update_dashboard(
    body: UpdateDashboardRequest,
    service: DashboardService = Depends(get_service),
):
    """
    Rewrite the configured tile to ``selectedColumns`` and reconcile the
    dashboard filters with ``selectedFilterDimensions``.

    Not transactional: an error part-way leaves earlier steps applied.
    """
    if not body.currentDashboardId:
        raise validation_error("currentDashboardId is required")
    if body.selectedColumns is None:
        raise validation_error("selectedColumns must be an array")
    if body.selectedFilterDimensions is None:
        raise validation_error("selectedFilterDimensions must be an array")

    await service.update_dashboard(
        body.currentDashboardId,
        body.originalDashboardId,
        body.selectedColumns,
        body.selectedFilterDimensions,
        body.filtersFromRequest or {},
        body.filterNameMap or {},
    )
    return {"success": True, "message": "Dashboard updated successfully"}


@router.post("/defaults")
async def dashboard_defaults(
    body: DashboardIdRequest,
    service: DashboardService = Depends(get_service),
):
    if not body.dashboardId:
        raise validation_error("dashboardId parameter is required")

    result = await service.get_default_columns_and_filter_name_map(
        body.dashboardId, body.tileTitle,
    )
    return {"success": True, **result}


@router.post("/save-copy")
async def save_copy(
    body: SaveCopyRequest,
    service: DashboardService = Depends(get_service),
):
    if not body.currentDashboardId or not body.folderId or not body.customName:
        raise validation_error(
            "currentDashboardId, folderId and customName are required in the request body"
        )

    dashboard_id = await service.save_dashboard_copy(
        body.currentDashboardId, body.folderId, body.customName,
    )
    return {"success": True, "dashboardId": dashboard_id}


@router.post("/filters")
async def dashboard_filters(
    body: DashboardIdRequest,
    service: DashboardService = Depends(get_service),
):
    if not body.dashboardId:
        raise validation_error("dashboardId parameter is required")

    filters = await service.get_dashboard_filters(body.dashboardId)
    return {"success": True, "filters": filters}
