"""Admin panel endpoints (bearer token with the admin role)."""
from __future__ import annotations

from collections import Counter
from dataclasses import asdict
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from findash.api.admission import ApiRateLimitedRoute
from findash.deps import get_audit_service, get_transaction_service, get_user_service
from findash.schemas.auth import PublicUser
from findash.schemas.finance import (
    AdminUserListResponse,
    AuditLogItem,
    AuditLogListResponse,
    SystemAnalyticsResponse,
    UserStats,
)
from findash.security import require_admin
from findash.services.audit import AuditService
from findash.services.transactions import TransactionService, as_utc
from findash.services.users import UserService

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    route_class=ApiRateLimitedRoute,
    dependencies=[Depends(require_admin)],
)


@router.get("/users", response_model=AdminUserListResponse, summary="List accounts")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    search: str | None = Query(None, description="Matches name or email"),
    users: UserService = Depends(get_user_service),
) -> AdminUserListResponse:
    rows, total = await users.list_users(page=page, limit=limit, search=search)
    stats = await users.stats()
    return AdminUserListResponse(
        users=[PublicUser.model_validate(row) for row in rows],
        total=total,
        stats=UserStats(**stats),
    )


@router.get("/analytics", response_model=SystemAnalyticsResponse, summary="System-wide analytics")
async def system_analytics(
    users: UserService = Depends(get_user_service),
    transactions: TransactionService = Depends(get_transaction_service),
) -> SystemAnalyticsResponse:
    signups = Counter((d.year, d.month) for d in map(as_utc, await users.signup_dates()))
    growth = [
        {"year": year, "month": month, "new_users": count}
        for (year, month), count in sorted(signups.items())
    ][-12:]
    return SystemAnalyticsResponse(
        user_stats=UserStats(**(await users.stats())),
        transaction_stats=await transactions.system_stats(),
        monthly_growth=growth,
        monthly_transaction_volume=await transactions.monthly_volume(),
        top_categories=await transactions.top_categories(),
    )


@router.get("/audit-logs", response_model=AuditLogListResponse, summary="List audit events")
async def list_audit_logs(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    user_id: str | None = Query(None),
    action: str | None = Query(None, description="LOGIN, LOGIN_FAILED or REGISTER"),
    resource: str | None = Query(None),
    since: datetime | None = Query(None, description="Only events at or after this ISO time"),
    until: datetime | None = Query(None),
    audit: AuditService = Depends(get_audit_service),
) -> AuditLogListResponse:
    records, total = await audit.list_logs(
        limit=limit,
        offset=offset,
        user_id=user_id,
        action=action,
        resource=resource,
        since=as_utc(since) if since else None,
        until=as_utc(until) if until else None,
    )
    return AuditLogListResponse(logs=[AuditLogItem(**asdict(r)) for r in records], total=total)
