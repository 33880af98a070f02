"""Tests for the weekly report run."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from findash.core.config import Settings
from findash.db.session import create_all, get_async_engine, get_session_maker
from findash.services.email import EmailService
from findash.services.reports import send_weekly_reports
from findash.services.transactions import TransactionService
from findash.services.users import UserService


class _RecordingMailer(EmailService):
    def __init__(self) -> None:
        super().__init__("http://test")
        self.sent: list[tuple[str, dict[str, float]]] = []

    async def send_weekly_report(self, email: str, name: str, analytics: dict[str, float]) -> None:
        if email.startswith("broken"):
            raise ConnectionError("smtp down")
        self.sent.append((email, analytics))


async def _verified(users: UserService, email: str) -> str:
    user = await users.create_user(email=email, password="s3cret-pass", name=email.split("@")[0])
    assert await users.verify_email(user.email_verification_token or "")
    return user.id


@pytest.mark.anyio
async def test_reports_go_to_verified_opted_in_users_only(settings: Settings) -> None:
    await create_all(settings)
    session_maker = get_session_maker(settings)
    users = UserService(session_maker)
    transactions = TransactionService(session_maker)
    now = datetime.now(timezone.utc)
    try:
        ada = await _verified(users, "ada@example.com")
        quiet = await _verified(users, "quiet@example.com")
        await users.update_profile(quiet, preferences={"notifications": {"weekly_reports": False}})
        await _verified(users, "broken@example.com")
        await users.create_user(email="pending@example.com", password="s3cret-pass", name="Pending")

        for amount, days_ago in ((800.0, 1), (-200.0, 2), (999.0, 30)):
            await transactions.create_transaction(
                ada,
                {
                    "name": "entry",
                    "amount": amount,
                    "date": now - timedelta(days=days_ago),
                    "status": "completed",
                    "category": "general",
                    "type": "income" if amount > 0 else "expense",
                    "payment_method": "card",
                },
            )

        mailer = _RecordingMailer()
        sent = await send_weekly_reports(users, transactions, mailer, now=now)

        assert sent == 1
        assert [email for email, _ in mailer.sent] == ["ada@example.com"]
        analytics = mailer.sent[0][1]
        assert analytics["total_income"] == 800.0
        assert analytics["total_expenses"] == 200.0
        assert analytics["transaction_count"] == 2
    finally:
        await get_async_engine(settings).dispose()
