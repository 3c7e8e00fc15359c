"""
Request bodies — field names match the JSON the frontend already sends.

Required ids are checked in the endpoints so the 400 messages stay the
ones clients know; pydantic only enforces types.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class RequestBody(BaseModel):
    """Looker ids arrive as numbers or strings; both become ``str``."""
    model_config = ConfigDict(coerce_numbers_to_str=True)


class DashboardIdRequest(RequestBody):
    dashboardId: Optional[str] = None
    tileTitle: Optional[str] = Field(
        None, description="Tile to read; defaults to the configured tile title.",
    )


class CopyDashboardRequest(RequestBody):
    originalDashboardId: Optional[str] = None
    userDashboardFolderId: Optional[str] = None
    originalDashboardCopyTitle: Optional[str] = None


class FindDashboardRequest(RequestBody):
    path: Optional[Union[str, List[str]]] = Field(
        None, description="'Shared/Team/Reports' or a list of segments.",
    )
    originalDashboardName: Optional[str] = None


class UpdateDashboardRequest(RequestBody):
    currentDashboardId: Optional[str] = None
    originalDashboardId: Optional[str] = None
    selectedColumns: Optional[List[str]] = None
    selectedFilterDimensions: Optional[List[str]] = None
    filtersFromRequest: Optional[Dict[str, Any]] = None
    filterNameMap: Optional[Dict[str, str]] = None


class DimensionsRequest(RequestBody):
    dimensions: Optional[List[str]] = None
    selectedMeasure: Optional[str] = None


class SaveCopyRequest(RequestBody):
    currentDashboardId: Optional[str] = None
    folderId: Optional[str] = None
    customName: Optional[str] = None


class FolderRequest(RequestBody):
    folderId: Optional[str] = None


class ExploreRequest(RequestBody):
    modelName: Optional[str] = None
    exploreName: Optional[str] = None
