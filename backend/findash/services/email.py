"""Development mail sender: logs what would be delivered."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class EmailService:
    def __init__(self, base_url: str) -> None:
        self._base_url = base_url.rstrip("/")

    async def send_verification_email(self, email: str, token: str, name: str) -> None:
        logger.info(
            "Verification email queued",
            extra={"to": email, "recipient_name": name, "url": f"{self._base_url}/verify-email?token={token}"},
        )

    async def send_transaction_alert(self, email: str, name: str, amount: float, currency: str) -> None:
        logger.info(
            "Transaction alert email queued",
            extra={"to": email, "recipient_name": name, "amount": amount, "currency": currency},
        )

    async def send_weekly_report(self, email: str, name: str, analytics: dict[str, float]) -> None:
        logger.info(
            "Weekly report email queued",
            extra={
                "to": email,
                "recipient_name": name,
                "income": analytics.get("total_income", 0.0),
                "expenses": analytics.get("total_expenses", 0.0),
            },
        )
