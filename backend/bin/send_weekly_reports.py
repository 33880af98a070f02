#!/usr/bin/env python3
"""Send the weekly analytics mail to verified users who opted in.

Meant for cron. Reads DATABASE_URL and friends from backend/.env or the environment.
"""
from __future__ import annotations

import asyncio
import logging
import os
import sys
from pathlib import Path


def _load_env() -> None:
    env_path = Path(__file__).resolve().parents[1] / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        if not line.strip() or line.strip().startswith("#"):
            continue
        if "=" in line:
            k, v = line.split("=", 1)
            os.environ.setdefault(k.strip(), v.strip())


async def main() -> int:
    _load_env()
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

    from findash.core.config import Settings
    from findash.db.session import get_session_maker
    from findash.services.email import EmailService
    from findash.services.reports import send_weekly_reports
    from findash.services.transactions import TransactionService
    from findash.services.users import UserService

    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    session_maker = get_session_maker(settings)
    sent = await send_weekly_reports(
        UserService(session_maker),
        TransactionService(session_maker),
        EmailService(settings.app_base_url),
    )
    print(f"Weekly reports sent: {sent}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
