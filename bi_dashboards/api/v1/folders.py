"""
Folder endpoints.

Routes:
  GET  /api/personal-folder     → current user's personal (or home) folder
  POST /api/folder/get-or-create → configured folder under the personal folder
  POST /api/folder/dashboards   → dashboards of a folder for the UI picker
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from bi_dashboards.api.v1.dependencies import get_service
from bi_dashboards.api.v1.schemas import FolderRequest
from bi_dashboards.core.errors import validation_error
from bi_dashboards.services.dashboard import DashboardService

router = APIRouter(prefix="/api", tags=["folders"])


@router.get("/personal-folder")
async def personal_folder(service: DashboardService = Depends(get_service)):
    folder_id = await service.get_personal_folder_id()
    return {"success": True, "folderId": folder_id}


@router.post("/folder/get-or-create")
async def get_or_create_folder(service: DashboardService = Depends(get_service)):
    """Find or create ``folderName`` inside the caller's personal folder."""
    personal_folder_id = await service.get_personal_folder_id()
    folder_id = await service.get_or_create_dashboard_folder(personal_folder_id)
    return {"success": True, "folderId": folder_id}


@router.post("/folder/dashboards")
async def folder_dashboards(
    body: FolderRequest,
    originalDashboardId: Optional[str] = Query(
        None, description="Dashboard always listed, even when it lives elsewhere.",
    ),
    service: DashboardService = Depends(get_service),
):
    if not body.folderId:
        raise validation_error("folderId parameter is required")

    dashboards = await service.get_dashboard_list_for_ui(
        body.folderId, originalDashboardId,
    )
    return {"success": True, "dashboards": dashboards}
