"""Per-user in-app notifications."""
from __future__ import annotations

import logging
from typing import Any, Iterable, Literal

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import async_sessionmaker

from findash.db import models

logger = logging.getLogger(__name__)

NotificationType = Literal["transaction", "balance", "system", "security"]
Priority = Literal["low", "medium", "high"]


class NotificationService:
    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def create_notification(
        self,
        user_id: str,
        *,
        type: NotificationType,
        title: str,
        message: str,
        priority: Priority = "medium",
        data: dict[str, Any] | None = None,
    ) -> models.Notification:
        notification = models.Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            priority=priority,
            data=data,
            read=False,
        )
        async with self._session_maker() as session:
            session.add(notification)
            await session.commit()
        logger.info(
            "Created notification",
            extra={"user_id": user_id, "notification_id": notification.id, "type": type},
        )
        return notification

    async def list_for_user(
        self, user_id: str, *, page: int = 1, limit: int = 20, unread_only: bool = False
    ) -> tuple[list[models.Notification], int]:
        """Newest first."""
        n = models.Notification
        filters = [n.user_id == user_id]
        if unread_only:
            filters.append(n.read.is_(False))
        offset = max(0, (page - 1) * limit)
        async with self._session_maker() as session:
            total = (
                await session.execute(select(func.count()).select_from(n).where(*filters))
            ).scalar_one()
            rows = (
                await session.execute(
                    select(n).where(*filters).order_by(n.created_at.desc()).offset(offset).limit(limit)
                )
            ).scalars().all()
        return list(rows), int(total)

    async def mark_read(self, user_id: str, notification_ids: Iterable[str]) -> int:
        """Mark the given notifications read; ids owned by other users are ignored."""
        ids = list(notification_ids)
        if not ids:
            return 0
        n = models.Notification
        return await self._mark(n.user_id == user_id, n.id.in_(ids))

    async def mark_all_read(self, user_id: str) -> int:
        return await self._mark(models.Notification.user_id == user_id)

    async def _mark(self, *filters: Any) -> int:
        n = models.Notification
        stmt = update(n).where(*filters, n.read.is_(False)).values(read=True)
        async with self._session_maker() as session:
            result = await session.execute(stmt)
            await session.commit()
        return int(result.rowcount or 0)
