"""Transaction records and the aggregates behind the dashboard and admin panel."""
from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from sqlalchemy import case, func, or_, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from findash.db import models

logger = logging.getLogger(__name__)

Period = Literal["week", "month", "year"]

SORTABLE_FIELDS = {
    "date": models.Transaction.date,
    "amount": models.Transaction.amount,
    "name": models.Transaction.name,
    "category": models.Transaction.category,
    "status": models.Transaction.status,
    "created_at": models.Transaction.created_at,
}


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def period_start(period: Period, now: datetime) -> datetime:
    if period == "week":
        return now - timedelta(days=7)
    if period == "year":
        return now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def month_starts(now: datetime, count: int = 12) -> list[datetime]:
    """First instant of each of the last ``count`` months, oldest first."""
    year, month = now.year, now.month
    starts: list[datetime] = []
    for _ in range(count):
        starts.append(datetime(year, month, 1, tzinfo=timezone.utc))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(starts))


class TransactionService:
    def __init__(self, session_maker: async_sessionmaker) -> None:
        self._session_maker = session_maker

    async def create_transaction(self, user_id: str, data: dict[str, Any]) -> models.Transaction:
        payload = dict(data)
        payload["date"] = as_utc(payload["date"])
        payload.setdefault("tags", [])
        if not payload.get("currency"):
            payload["currency"] = "USD"
        tx = models.Transaction(user_id=user_id, **payload)
        async with self._session_maker() as session:
            session.add(tx)
            await session.commit()
        logger.info(
            "Created transaction",
            extra={"user_id": user_id, "transaction_id": tx.id, "status": tx.status},
        )
        return tx

    async def list_for_user(
        self,
        user_id: str,
        *,
        page: int = 1,
        limit: int = 10,
        search: str | None = None,
        status: str | None = None,
        category: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        sort_by: str = "date",
        sort_order: Literal["asc", "desc"] = "desc",
    ) -> tuple[list[models.Transaction], int]:
        tx = models.Transaction
        filters = [tx.user_id == user_id]
        if search:
            pattern = f"%{search}%"
            filters.append(
                or_(
                    tx.name.ilike(pattern),
                    tx.email.ilike(pattern),
                    tx.description.ilike(pattern),
                    tx.merchant.ilike(pattern),
                )
            )
        if status and status != "all":
            filters.append(tx.status == status)
        if category and category != "all":
            filters.append(tx.category == category)
        if start_date:
            filters.append(tx.date >= as_utc(start_date))
        if end_date:
            filters.append(tx.date <= as_utc(end_date))

        column = SORTABLE_FIELDS.get(sort_by, tx.date)
        order = column.asc() if sort_order == "asc" else column.desc()
        offset = max(0, (page - 1) * limit)
        async with self._session_maker() as session:
            total = (
                await session.execute(select(func.count()).select_from(tx).where(*filters))
            ).scalar_one()
            rows = (
                await session.execute(select(tx).where(*filters).order_by(order).offset(offset).limit(limit))
            ).scalars().all()
        return list(rows), int(total)

    async def analytics(self, user_id: str, period: Period = "month", *, now: datetime | None = None) -> dict[str, float]:
        now = now or datetime.now(timezone.utc)
        tx = models.Transaction
        stmt = select(
            func.coalesce(func.sum(case((tx.amount > 0, tx.amount), else_=0)), 0),
            func.coalesce(func.sum(case((tx.amount < 0, -tx.amount), else_=0)), 0),
            func.count(tx.id),
            func.coalesce(func.avg(tx.amount), 0),
        ).where(
            tx.user_id == user_id,
            tx.status == "completed",
            tx.date >= period_start(period, now),
        )
        async with self._session_maker() as session:
            income, expenses, count, avg = (await session.execute(stmt)).one()
        income, expenses = float(income), float(expenses)
        return {
            "total_income": income,
            "total_expenses": expenses,
            "balance": income - expenses,
            "transaction_count": int(count),
            "avg_transaction_amount": float(avg),
        }

    async def category_breakdown(
        self, user_id: str, period: Period = "month", *, now: datetime | None = None
    ) -> list[dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        tx = models.Transaction
        total = func.sum(func.abs(tx.amount)).label("total")
        stmt = (
            select(tx.category, total, func.count(tx.id))
            .where(
                tx.user_id == user_id,
                tx.status == "completed",
                tx.date >= period_start(period, now),
            )
            .group_by(tx.category)
            .order_by(total.desc())
        )
        async with self._session_maker() as session:
            rows = (await session.execute(stmt)).all()
        return [
            {"category": category, "total": float(amount or 0), "count": int(count)}
            for category, amount, count in rows
        ]

    async def monthly_series(self, user_id: str, *, now: datetime | None = None) -> list[dict[str, Any]]:
        """Income and expenses per month for the trailing twelve months."""
        now = now or datetime.now(timezone.utc)
        starts = month_starts(now)
        tx = models.Transaction
        stmt = select(tx.date, tx.amount).where(tx.user_id == user_id, tx.date >= starts[0])
        async with self._session_maker() as session:
            rows = (await session.execute(stmt)).all()

        buckets: dict[tuple[int, int], dict[str, float]] = defaultdict(lambda: {"income": 0.0, "expenses": 0.0})
        for date, amount in rows:
            date = as_utc(date)
            bucket = buckets[(date.year, date.month)]
            if amount > 0:
                bucket["income"] += amount
            elif amount < 0:
                bucket["expenses"] += -amount
        return [
            {
                "month": start.strftime("%b"),
                "year": start.year,
                "income": buckets[(start.year, start.month)]["income"],
                "expenses": buckets[(start.year, start.month)]["expenses"],
            }
            for start in starts
        ]

    # -- system-wide aggregates for admins ---------------------------------

    async def system_stats(self) -> dict[str, Any]:
        tx = models.Transaction
        stmt = select(
            func.count(tx.id),
            func.coalesce(func.sum(func.abs(tx.amount)), 0),
            func.coalesce(func.avg(func.abs(tx.amount)), 0),
            func.coalesce(func.sum(case((tx.status == "completed", 1), else_=0)), 0),
            func.coalesce(func.sum(case((tx.status == "pending", 1), else_=0)), 0),
            func.coalesce(func.sum(case((tx.status == "failed", 1), else_=0)), 0),
        )
        async with self._session_maker() as session:
            count, volume, avg, completed, pending, failed = (await session.execute(stmt)).one()
        return {
            "total_transactions": int(count),
            "total_volume": float(volume),
            "avg_transaction_amount": float(avg),
            "completed_transactions": int(completed),
            "pending_transactions": int(pending),
            "failed_transactions": int(failed),
        }

    async def monthly_volume(self, *, now: datetime | None = None) -> list[dict[str, Any]]:
        now = now or datetime.now(timezone.utc)
        starts = month_starts(now)
        tx = models.Transaction
        stmt = select(tx.date, tx.amount).where(tx.status == "completed", tx.date >= starts[0])
        async with self._session_maker() as session:
            rows = (await session.execute(stmt)).all()
        volume: dict[tuple[int, int], list[float]] = defaultdict(lambda: [0.0, 0])
        for date, amount in rows:
            date = as_utc(date)
            entry = volume[(date.year, date.month)]
            entry[0] += abs(amount)
            entry[1] += 1
        return [
            {"year": year, "month": month, "volume": total, "count": int(count)}
            for (year, month), (total, count) in sorted(volume.items())
        ]

    async def top_categories(self, limit: int = 10) -> list[dict[str, Any]]:
        tx = models.Transaction
        total = func.sum(func.abs(tx.amount)).label("total")
        stmt = (
            select(tx.category, total, func.count(tx.id))
            .where(tx.status == "completed")
            .group_by(tx.category)
            .order_by(total.desc())
            .limit(limit)
        )
        async with self._session_maker() as session:
            rows = (await session.execute(stmt)).all()
        return [
            {"category": category, "total_amount": float(amount or 0), "count": int(count)}
            for category, amount, count in rows
        ]
