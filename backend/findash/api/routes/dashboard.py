"""Dashboard summary for the authenticated user."""
from __future__ import annotations

from fastapi import APIRouter, Depends

from findash.api.admission import ApiRateLimitedRoute
from findash.deps import get_transaction_service
from findash.schemas.finance import (
    CategoryTotal,
    ChartPoint,
    DashboardMetrics,
    DashboardResponse,
    TransactionOut,
)
from findash.security import IdentityClaims, require_identity
from findash.services.transactions import TransactionService

router = APIRouter(prefix="/dashboard", tags=["dashboard"], route_class=ApiRateLimitedRoute)

RECENT_TRANSACTIONS = 50
SAVINGS_RATE = 0.2


@router.get("", response_model=DashboardResponse, summary="Metrics, recent activity and charts")
async def get_dashboard(
    claims: IdentityClaims = Depends(require_identity),
    service: TransactionService = Depends(get_transaction_service),
) -> DashboardResponse:
    user_id = claims.subject_id
    recent, _ = await service.list_for_user(user_id, limit=RECENT_TRANSACTIONS, sort_by="date", sort_order="desc")
    analytics = await service.analytics(user_id, "month")
    breakdown = await service.category_breakdown(user_id, "month")
    series = await service.monthly_series(user_id)

    balance = analytics["balance"]
    return DashboardResponse(
        metrics=DashboardMetrics(
            balance=round(balance),
            revenue=round(analytics["total_income"]),
            expenses=round(analytics["total_expenses"]),
            savings=round(balance * SAVINGS_RATE),
        ),
        transactions=[TransactionOut.model_validate(row) for row in recent],
        chart_data=[ChartPoint(**point) for point in series],
        category_breakdown=[CategoryTotal(**item) for item in breakdown],
        analytics={**analytics, "avg_transaction_amount": round(analytics["avg_transaction_amount"])},
    )
