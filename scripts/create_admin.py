#!/usr/bin/env python3
"""Create (or promote) an admin account.

Usage:
    python scripts/create_admin.py --email admin@example.com --name "Site Admin" [--password PASS]

Reads DATABASE_PATH and JWT_SECRET from .env. The schema must already exist
(start the server once, or run `alembic upgrade head`). If the email already
belongs to a user, that user is promoted to admin and the password is reset.
"""

import argparse
import asyncio
import getpass
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")

import aiosqlite

from app.config import settings
from app.routes.auth import MIN_PASSWORD_LENGTH, hash_password


async def create_admin(database_path: str, email: str, name: str, password: str) -> int:
    db = await aiosqlite.connect(database_path)
    db.row_factory = aiosqlite.Row
    try:
        cursor = await db.execute("SELECT id FROM users WHERE email = ?", (email,))
        existing = await cursor.fetchone()
        pw_hash = hash_password(password)

        if existing:
            await db.execute(
                "UPDATE users SET role = 'admin', password_hash = ?, name = ? WHERE id = ?",
                (pw_hash, name, existing["id"]),
            )
            await db.commit()
            print(f"Promoted existing user {email} (id={existing['id']}) to admin")
            return existing["id"]

        cursor = await db.execute(
            "INSERT INTO users (name, email, password_hash, role) VALUES (?, ?, ?, 'admin')",
            (name, email, pw_hash),
        )
        await db.commit()
        print(f"Created admin {email} (id={cursor.lastrowid})")
        return cursor.lastrowid
    finally:
        await db.close()


def main():
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("--email", required=True, help="Admin login email")
    parser.add_argument("--name", default="Admin", help="Display name (default: Admin)")
    parser.add_argument("--password", default=None, help="Password (prompted if omitted)")
    parser.add_argument(
        "--database-path",
        default=settings.database_path,
        help="Path to SQLite database (default: DATABASE_PATH from .env)",
    )
    args = parser.parse_args()

    if not Path(args.database_path).exists():
        print(f"ERROR: database not found: {args.database_path}")
        sys.exit(1)

    password = args.password or getpass.getpass("Password: ")
    if len(password) < MIN_PASSWORD_LENGTH:
        print(f"ERROR: password must be at least {MIN_PASSWORD_LENGTH} characters")
        sys.exit(1)

    asyncio.run(create_admin(args.database_path, args.email.lower(), args.name, password))


if __name__ == "__main__":
    main()
