#!/usr/bin/env python3
"""Create an admin account, or promote an existing one.

Reads DATABASE_URL and friends from backend/.env or the environment. Idempotent.
"""
from __future__ import annotations

import argparse
import asyncio
import getpass
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


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("--name", default="Administrator")
    parser.add_argument("--password", help="Prompted for when omitted")
    args = parser.parse_args(argv)

    _load_env()
    sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

    from findash.core.config import Settings
    from findash.db.session import create_all, get_session_maker
    from findash.services.users import UserExistsError, UserService

    settings = Settings()
    await create_all(settings)
    users = UserService(get_session_maker(settings))

    existing = await users.get_by_email(args.email)
    if existing:
        await users.set_role(args.email, "admin")
        print(f"Promoted existing user to admin: {existing.email}")
        return 0

    password = args.password or getpass.getpass("Password: ")
    if len(password) < 8:
        print("Password must be at least 8 characters long")
        return 2
    try:
        user = await users.create_user(email=args.email, password=password, name=args.name, role="admin")
    except UserExistsError:
        print(f"User already exists: {args.email}")
        return 1
    print(f"Created admin user: {user.email} ({user.id})")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
