"""Transaction listing and entry for the authenticated user."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query, status

from findash.api.admission import ApiRateLimitedRoute
from findash.core.config import Settings, get_settings
from findash.deps import (
    get_email_service,
    get_notification_service,
    get_transaction_service,
    get_user_service,
)
from findash.schemas.finance import TransactionCreate, TransactionListResponse, TransactionOut
from findash.security import IdentityClaims, require_identity
from findash.services.email import EmailService
from findash.services.notifications import NotificationService
from findash.services.transactions import TransactionService
from findash.services.users import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transactions", tags=["transactions"], route_class=ApiRateLimitedRoute)


@router.get("", response_model=TransactionListResponse, summary="List the caller's transactions")
async def list_transactions(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=200),
    search: str | None = Query(None, description="Matches name, email, description or merchant"),
    status_filter: str = Query("all", alias="status"),
    category: str = Query("all"),
    start_date: datetime | None = Query(None),
    end_date: datetime | None = Query(None),
    sort_by: str = Query("date"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    claims: IdentityClaims = Depends(require_identity),
    service: TransactionService = Depends(get_transaction_service),
) -> TransactionListResponse:
    rows, total = await service.list_for_user(
        claims.subject_id,
        page=page,
        limit=limit,
        search=search,
        status=status_filter,
        category=category,
        start_date=start_date,
        end_date=end_date,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return TransactionListResponse(
        transactions=[TransactionOut.model_validate(row) for row in rows],
        total=total,
        page=page,
        limit=limit,
    )


@router.post(
    "",
    response_model=TransactionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Record a transaction",
)
async def create_transaction(
    payload: TransactionCreate,
    claims: IdentityClaims = Depends(require_identity),
    service: TransactionService = Depends(get_transaction_service),
    users: UserService = Depends(get_user_service),
    mailer: EmailService = Depends(get_email_service),
    notifications: NotificationService = Depends(get_notification_service),
    settings: Settings = Depends(get_settings),
) -> TransactionOut:
    tx = await service.create_transaction(claims.subject_id, payload.model_dump())

    if abs(tx.amount) > settings.transaction_alert_threshold:
        await notifications.create_notification(
            claims.subject_id,
            type="transaction",
            title="Large transaction",
            message=f"{tx.name}: {tx.amount:,.2f} {tx.currency}",
            priority="high",
            data={"transaction_id": tx.id, "amount": tx.amount},
        )
        user = await users.get_by_id(claims.subject_id)
        prefs = (user.preferences or {}).get("notifications", {}) if user else {}
        if user and prefs.get("transaction_alerts"):
            try:
                await mailer.send_transaction_alert(user.email, user.name, tx.amount, tx.currency)
            except Exception:
                logger.warning(
                    "Failed to send transaction alert", extra={"transaction_id": tx.id}, exc_info=True
                )
    return TransactionOut.model_validate(tx)
