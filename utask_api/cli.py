#!/usr/bin/env python3
"""
Maintenance commands for the UTASK database.

Usage:
    python -m utask_api.cli init-db
    python -m utask_api.cli create-token --email maria@example.com --days 365
    python -m utask_api.cli reset-password --email maria@example.com

``--db`` overrides the database path from ``DATABASE_URL``.  If
``--password`` is omitted for ``reset-password``, you will be prompted
to enter it securely.  The commands never read or reveal existing
passwords.
"""

import argparse
import asyncio
import getpass
import sys
from typing import List, Optional

from utask_api.app.core.config import Settings
from utask_api.app.core.db import Database, resolve_database_path
from utask_api.app.core.errors import UtaskError
from utask_api.app.core.security import create_access_token
from utask_api.app.services.user_service import UserService


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="utask", description="UTASK database maintenance.")
    ap.add_argument("--db", help="Path to SQLite DB file (defaults to DATABASE_URL)")
    commands = ap.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database and apply migrations")

    token = commands.add_parser("create-token", help="Issue an access token for a user")
    token.add_argument("--email", required=True, help="User email")
    token.add_argument("--days", type=int, default=7, help="Token lifetime in days (default 7)")

    reset = commands.add_parser("reset-password", help="Set a new password for a user")
    reset.add_argument("--email", required=True, help="User email to update")
    reset.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    return ap


def _database(args: argparse.Namespace, settings: Settings) -> Database:
    if args.db:
        return Database(resolve_database_path(args.db), timeout=settings.database_timeout)
    return Database.from_settings(settings)


def main(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = settings or Settings()
    db = _database(args, settings)

    try:
        if args.command == "init-db":
            version = db.init()
            print(f"[+] Database {db.path} at schema version {version}")
            return 0

        db.init()
        users = UserService(db)
        if args.command == "create-token":
            user = asyncio.run(users.get_user_by_email(args.email))
            token = create_access_token(
                {"userId": user.id, "email": user.email},
                expires_delta=args.days * 24 * 60 * 60,
                secret_key=settings.secret_key,
            )
            print(token)
            return 0

        new_password = args.password or getpass.getpass("Enter NEW password: ")
        if not new_password:
            print("[!] Empty password is not allowed.", file=sys.stderr)
            return 1
        asyncio.run(users.set_password(args.email, new_password))
        print(f"[+] Password updated for user: {args.email}")
        return 0
    except UtaskError as exc:
        print(f"[!] {exc.message}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
