"""
account_requests.py - Database helper queries for instructor account requests

Provides insert/fetch/update/delete functions for the account_requests table.
Functions never commit on their own except where noted; callers that group
several statements into one transaction commit themselves.
"""

import uuid
import secrets
from typing import Optional, List

import aiosqlite

from app.models.account_request import AccountRequest, AccountRequestStatus

_COLUMNS = "id, name, email, institute, status, comments, registration_key, created_at, registered_at"


def _row_to_entity(row) -> AccountRequest:
    return AccountRequest(**dict(row))


def generate_registration_key() -> str:
    return secrets.token_urlsafe(32)


async def get_account_request(db: aiosqlite.Connection, request_id: uuid.UUID) -> Optional[AccountRequest]:
    """Get an account request by its id."""
    cursor = await db.execute(
        f"SELECT {_COLUMNS} FROM account_requests WHERE id = ?",
        (str(request_id),)
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return _row_to_entity(row)


async def get_account_request_by_key(db: aiosqlite.Connection, registration_key: str) -> Optional[AccountRequest]:
    """Get an account request by the registration key mailed on approval."""
    cursor = await db.execute(
        f"SELECT {_COLUMNS} FROM account_requests WHERE registration_key = ?",
        (registration_key,)
    )
    row = await cursor.fetchone()
    if not row:
        return None
    return _row_to_entity(row)


async def create_account_request(
    db: aiosqlite.Connection,
    name: str,
    email: str,
    institute: str,
    comments: Optional[str] = None,
    status: AccountRequestStatus = AccountRequestStatus.PENDING,
) -> AccountRequest:
    """Insert a new account request and commit. Returns the stored entity."""
    request_id = str(uuid.uuid4())
    await db.execute(
        """INSERT INTO account_requests (id, name, email, institute, status, comments, registration_key)
           VALUES (?, ?, ?, ?, ?, ?, ?)""",
        (request_id, name, email, institute, status.value, comments, generate_registration_key())
    )
    await db.commit()
    return await get_account_request(db, uuid.UUID(request_id))


async def save_account_request(db: aiosqlite.Connection, entity: AccountRequest) -> None:
    """Overwrite the mutable columns of an existing account request (no commit)."""
    await db.execute(
        """UPDATE account_requests
           SET name = ?, email = ?, institute = ?, status = ?, comments = ?,
               registration_key = ?, registered_at = ?
           WHERE id = ?""",
        (
            entity.name,
            entity.email,
            entity.institute,
            entity.status.value,
            entity.comments,
            entity.registration_key,
            entity.registered_at,
            entity.id,
        )
    )


async def mark_account_request_registered(
    db: aiosqlite.Connection,
    request_id: uuid.UUID,
    registered_at: str,
) -> None:
    """Set status REGISTERED and the registration time, leaving the other columns alone (no commit)."""
    await db.execute(
        "UPDATE account_requests SET status = ?, registered_at = ? WHERE id = ?",
        (AccountRequestStatus.REGISTERED.value, registered_at, str(request_id))
    )


async def delete_account_request(db: aiosqlite.Connection, request_id: uuid.UUID) -> bool:
    """Delete an account request and commit. Returns whether a row was removed."""
    cursor = await db.execute(
        "DELETE FROM account_requests WHERE id = ?",
        (str(request_id),)
    )
    await db.commit()
    return cursor.rowcount > 0


async def list_account_requests(
    db: aiosqlite.Connection,
    status: Optional[AccountRequestStatus] = None,
) -> List[AccountRequest]:
    """List account requests, newest first, optionally filtered by status."""
    if status is None:
        cursor = await db.execute(
            f"SELECT {_COLUMNS} FROM account_requests ORDER BY created_at DESC, name"
        )
    else:
        cursor = await db.execute(
            f"SELECT {_COLUMNS} FROM account_requests WHERE status = ? ORDER BY created_at DESC, name",
            (status.value,)
        )
    rows = await cursor.fetchall()
    return [_row_to_entity(r) for r in rows]


async def search_account_requests(db: aiosqlite.Connection, query: str, limit: int = 50) -> List[AccountRequest]:
    """Case-insensitive substring search over name, email and institute."""
    pattern = f"%{query.strip().lower()}%"
    cursor = await db.execute(
        f"""SELECT {_COLUMNS} FROM account_requests
            WHERE LOWER(name) LIKE ? OR LOWER(email) LIKE ? OR LOWER(institute) LIKE ?
            ORDER BY created_at DESC, name
            LIMIT ?""",
        (pattern, pattern, pattern, limit)
    )
    rows = await cursor.fetchall()
    return [_row_to_entity(r) for r in rows]
