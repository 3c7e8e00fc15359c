"""
API v1 — Router aggregation.

Paths keep the ``/api/...`` layout existing frontends call; there is no
version segment in the URL.
"""

from fastapi import APIRouter

from bi_dashboards.api.v1.dashboard import router as dashboard_router
from bi_dashboards.api.v1.explore import router as explore_router
from bi_dashboards.api.v1.filters import router as filters_router
from bi_dashboards.api.v1.folders import router as folders_router
from bi_dashboards.api.v1.system import router as system_router

api_router = APIRouter()
api_router.include_router(system_router)
api_router.include_router(folders_router)
api_router.include_router(dashboard_router)
api_router.include_router(filters_router)
api_router.include_router(explore_router)
