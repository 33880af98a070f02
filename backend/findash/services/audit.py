"""Audit trail for account events (logins, failed logins, registrations)."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from findash.db import models

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuditRecord:
    action: str
    resource: str
    user_id: str | None = None
    ip: str | None = None
    user_agent: str | None = None
    details: Dict[str, Any] = field(default_factory=dict)
    created_at: str | None = None


class AuditService:
    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def log(self, record: AuditRecord) -> None:
        async with self._session_maker() as session:
            session.add(
                models.AuditLog(
                    user_id=record.user_id,
                    action=record.action,
                    resource=record.resource,
                    details=record.details or None,
                    ip=record.ip,
                    user_agent=record.user_agent,
                )
            )
            await session.commit()

    async def log_login(self, user_id: str, *, ip: str | None, user_agent: str | None) -> None:
        await self.log(
            AuditRecord(
                action="LOGIN",
                resource="auth",
                user_id=user_id,
                ip=ip,
                user_agent=user_agent,
                details={"success": True},
            )
        )

    async def log_failed_login(self, email: str, *, ip: str | None, user_agent: str | None) -> None:
        logger.warning("Failed login attempt", extra={"email": email, "ip": ip})
        await self.log(
            AuditRecord(
                action="LOGIN_FAILED",
                resource="auth",
                ip=ip,
                user_agent=user_agent,
                details={"email": email, "success": False},
            )
        )

    async def log_registration(self, user_id: str, *, ip: str | None, user_agent: str | None) -> None:
        await self.log(
            AuditRecord(action="REGISTER", resource="auth", user_id=user_id, ip=ip, user_agent=user_agent)
        )

    async def list_logs(
        self,
        *,
        limit: int = 100,
        offset: int = 0,
        user_id: str | None = None,
        action: str | None = None,
        resource: str | None = None,
        since: Optional[datetime] = None,
        until: Optional[datetime] = None,
    ) -> tuple[list[AuditRecord], int]:
        filters = []
        if user_id:
            filters.append(models.AuditLog.user_id == user_id)
        if action:
            filters.append(models.AuditLog.action == action)
        if resource:
            filters.append(models.AuditLog.resource == resource)
        if since:
            filters.append(models.AuditLog.created_at >= since)
        if until:
            filters.append(models.AuditLog.created_at <= until)
        stmt: Select[tuple[models.AuditLog]] = (
            select(models.AuditLog)
            .where(*filters)
            .order_by(models.AuditLog.created_at.desc(), models.AuditLog.id.desc())
            .offset(offset)
            .limit(limit)
        )
        async with self._session_maker() as session:
            total = (
                await session.execute(select(func.count()).select_from(models.AuditLog).where(*filters))
            ).scalar_one()
            rows = (await session.execute(stmt)).scalars().all()
        records = [
            AuditRecord(
                action=row.action,
                resource=row.resource,
                user_id=row.user_id,
                ip=row.ip,
                user_agent=row.user_agent,
                details=row.details or {},
                created_at=row.created_at.isoformat(),
            )
            for row in rows
        ]
        return records, int(total)
