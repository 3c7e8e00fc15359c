"""
Filter endpoints — values and date-range counts for filter pickers.

Routes:
  POST /api/filters/values            → top "value (count)" per dimension
  POST /api/filters/date-range-counts → counts over relative date ranges
"""

from fastapi import APIRouter, Depends

from bi_dashboards.api.v1.dependencies import get_service
from bi_dashboards.api.v1.schemas import DimensionsRequest
from bi_dashboards.core.errors import validation_error
from bi_dashboards.services.dashboard import DashboardService

router = APIRouter(prefix="/api/filters", tags=["filters"])


@router.post("/values")
async def filter_values(
    body: DimensionsRequest,
    service: DashboardService = Depends(get_service),
):
    if body.dimensions is None:
        raise validation_error("dimensions must be an array")

    values = await service.get_filter_values(body.dimensions, body.selectedMeasure)
    return {"success": True, "values": values}


@router.post("/date-range-counts")
async def date_range_counts(
    body: DimensionsRequest,
    service: DashboardService = Depends(get_service),
):
    if body.dimensions is None:
        raise validation_error("dimensions must be an array")

    counts = await service.get_date_range_counts(body.dimensions, body.selectedMeasure)
    return {"success": True, "counts": counts}
