"""
Dashboard endpoint.

GET /api/dashboard — login stats, profile completeness and recent activity
for the bearer's account.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_current_account, get_dashboard_service, rate_limited
from infrastructure.cache.rate_limiter import GENERAL_LIMIT
from schemas.dto.responses.dashboard import DashboardResponse
from schemas.models.account import AccountDoc
from services.dashboard_service import DashboardService

router = APIRouter(
    prefix="/api",
    tags=["dashboard"],
    dependencies=[Depends(rate_limited(GENERAL_LIMIT))],
)


@router.get("/dashboard", response_model=DashboardResponse)
async def dashboard(
    account: AccountDoc = Depends(get_current_account),
    dashboards: DashboardService = Depends(get_dashboard_service),
) -> DashboardResponse:
    return dashboards.summarize(account)
