"""Account storage: registration, lookup, profile updates and admin listings."""
from __future__ import annotations

import logging
import secrets
from typing import Any, Optional

from sqlalchemy import case, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker

from findash.db import models
from findash.db.models import default_preferences, utcnow
from findash.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class UserExistsError(Exception):
    """Raised when registering an email that already has an account."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


def merge_preferences(current: dict[str, Any] | None, updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(current or default_preferences())
    for key, value in updates.items():
        if key == "notifications" and isinstance(value, dict):
            merged["notifications"] = {**merged.get("notifications", {}), **value}
        else:
            merged[key] = value
    return merged


class UserService:
    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def create_user(
        self, *, email: str, password: str, name: str, role: str = "user"
    ) -> models.User:
        email = normalize_email(email)
        user = models.User(
            email=email,
            password_hash=hash_password(password),
            name=name.strip(),
            role=role,
            is_email_verified=False,
            email_verification_token=secrets.token_hex(32),
            preferences=default_preferences(),
        )
        async with self._session_maker() as session:
            existing = (
                await session.execute(select(models.User.id).where(models.User.email == email))
            ).scalar_one_or_none()
            if existing:
                raise UserExistsError(email)
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise UserExistsError(email) from exc
        logger.info("Registered user", extra={"user_id": user.id, "role": role})
        return user

    async def get_by_email(self, email: str) -> Optional[models.User]:
        async with self._session_maker() as session:
            stmt = select(models.User).where(models.User.email == normalize_email(email))
            return (await session.execute(stmt)).scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> Optional[models.User]:
        async with self._session_maker() as session:
            return await session.get(models.User, user_id)

    async def authenticate(self, email: str, password: str) -> Optional[models.User]:
        """Return the user when the password matches, otherwise None."""
        user = await self.get_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user

    async def record_login(self, user_id: str) -> None:
        async with self._session_maker() as session:
            user = await session.get(models.User, user_id)
            if user is None:
                return
            user.last_login_at = utcnow()
            await session.commit()

    async def update_profile(
        self,
        user_id: str,
        *,
        name: str | None = None,
        avatar: str | None = None,
        preferences: dict[str, Any] | None = None,
    ) -> Optional[models.User]:
        async with self._session_maker() as session:
            user = await session.get(models.User, user_id)
            if user is None:
                return None
            if name is not None:
                user.name = name.strip()
            if avatar is not None:
                user.avatar = avatar
            if preferences:
                # JSON columns are not mutation-tracked; assign a fresh dict
                user.preferences = merge_preferences(user.preferences, preferences)
            user.updated_at = utcnow()
            await session.commit()
            return user

    async def verify_email(self, token: str) -> bool:
        if not token:
            return False
        async with self._session_maker() as session:
            stmt = select(models.User).where(models.User.email_verification_token == token)
            user = (await session.execute(stmt)).scalar_one_or_none()
            if user is None:
                return False
            user.is_email_verified = True
            user.email_verification_token = None
            await session.commit()
        logger.info("Email verified", extra={"user_id": user.id})
        return True

    async def set_role(self, email: str, role: str) -> bool:
        async with self._session_maker() as session:
            stmt = select(models.User).where(models.User.email == normalize_email(email))
            user = (await session.execute(stmt)).scalar_one_or_none()
            if user is None:
                return False
            user.role = role
            await session.commit()
            return True

    async def list_users(
        self, *, page: int = 1, limit: int = 20, search: str | None = None
    ) -> tuple[list[models.User], int]:
        filters = []
        if search:
            pattern = f"%{search}%"
            filters.append(or_(models.User.name.ilike(pattern), models.User.email.ilike(pattern)))
        offset = max(0, (page - 1) * limit)
        async with self._session_maker() as session:
            total = (
                await session.execute(select(func.count()).select_from(models.User).where(*filters))
            ).scalar_one()
            rows = (
                await session.execute(
                    select(models.User)
                    .where(*filters)
                    .order_by(models.User.created_at.desc())
                    .offset(offset)
                    .limit(limit)
                )
            ).scalars().all()
        return list(rows), int(total)

    async def stats(self) -> dict[str, int]:
        stmt = select(
            func.count(models.User.id),
            func.coalesce(func.sum(case((models.User.is_email_verified.is_(True), 1), else_=0)), 0),
            func.coalesce(func.sum(case((models.User.role == "admin", 1), else_=0)), 0),
        )
        async with self._session_maker() as session:
            total, verified, admins = (await session.execute(stmt)).one()
        return {
            "total_users": int(total or 0),
            "verified_users": int(verified or 0),
            "admin_users": int(admins or 0),
        }

    async def signup_dates(self) -> list:
        async with self._session_maker() as session:
            return list((await session.execute(select(models.User.created_at))).scalars().all())

    async def weekly_report_recipients(self) -> list[models.User]:
        """Verified users who kept the weekly report preference switched on."""
        async with self._session_maker() as session:
            stmt = select(models.User).where(models.User.is_email_verified.is_(True))
            rows = (await session.execute(stmt)).scalars().all()
        return [
            user
            for user in rows
            if (user.preferences or {}).get("notifications", {}).get("weekly_reports", True)
        ]
