"""Notification tray endpoints for the authenticated user."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from findash.api.admission import ApiRateLimitedRoute
from findash.deps import get_notification_service
from findash.schemas.auth import MessageResponse
from findash.schemas.notifications import (
    MarkReadRequest,
    NotificationListResponse,
    NotificationOut,
)
from findash.security import IdentityClaims, require_identity
from findash.services.notifications import NotificationService

router = APIRouter(prefix="/notifications", tags=["notifications"], route_class=ApiRateLimitedRoute)


@router.get("", response_model=NotificationListResponse, summary="List the caller's notifications")
async def list_notifications(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=200),
    unread_only: bool = Query(False),
    claims: IdentityClaims = Depends(require_identity),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    rows, total = await service.list_for_user(
        claims.subject_id, page=page, limit=limit, unread_only=unread_only
    )
    return NotificationListResponse(
        notifications=[NotificationOut.model_validate(row) for row in rows],
        total=total,
    )


@router.put("", response_model=MessageResponse, summary="Mark notifications as read")
async def mark_notifications_read(
    payload: MarkReadRequest,
    claims: IdentityClaims = Depends(require_identity),
    service: NotificationService = Depends(get_notification_service),
) -> MessageResponse:
    if payload.mark_all:
        count = await service.mark_all_read(claims.subject_id)
    elif payload.notification_ids is not None:
        count = await service.mark_read(claims.subject_id, payload.notification_ids)
    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide notification_ids or set mark_all",
        )
    return MessageResponse(message=f"Marked {count} notifications as read")
