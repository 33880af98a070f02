"""Weekly summary mail for opted-in users."""
from __future__ import annotations

import logging
from datetime import datetime

from findash.services.email import EmailService
from findash.services.transactions import TransactionService
from findash.services.users import UserService

logger = logging.getLogger(__name__)


async def send_weekly_reports(
    users: UserService,
    transactions: TransactionService,
    mailer: EmailService,
    *,
    now: datetime | None = None,
) -> int:
    """Mail last week's analytics to every recipient; returns how many were sent.

    One user's failure is logged and does not stop the run.
    """
    recipients = await users.weekly_report_recipients()
    sent = 0
    for user in recipients:
        try:
            analytics = await transactions.analytics(user.id, "week", now=now)
            await mailer.send_weekly_report(user.email, user.name, analytics)
        except Exception:
            logger.exception("Failed to send weekly report", extra={"user_id": user.id})
            continue
        sent += 1
    logger.info("Weekly reports sent", extra={"sent": sent, "recipients": len(recipients)})
    return sent
