"""Explore export endpoint."""

from fastapi import APIRouter, Depends

from bi_dashboards.api.v1.dependencies import get_service
from bi_dashboards.api.v1.schemas import ExploreRequest
from bi_dashboards.core.errors import validation_error
from bi_dashboards.services.dashboard import DashboardService

router = APIRouter(prefix="/api/explore", tags=["explore"])


@router.post("/save-measures")
async def save_explore_measures(
    body: ExploreRequest,
    service: DashboardService = Depends(get_service),
):
    """
    Export an explore's measures/dimensions for the voucher dashboards.

    Writes a JSON file on the server and mirrors it to Firestore; the
    ``documentStore`` field says whether the mirror write happened.
    """
    if not body.modelName or not body.exploreName:
        raise validation_error("Both modelName and exploreName are required in the request body")

    result = await service.save_explore_measures(body.modelName, body.exploreName)
    return {"success": True, **result}
