"""
account_request_actions.py - Account request operations used by the API routes

Provides:
- update_account_request(db, raw_id, payload, sender) - validated edit with approval email
- reset_account_request(db, raw_id, sender) - reopen a registered request for re-registration
- create_account_request(db, payload) - new PENDING request from the public form
- register_instructor(db, registration_key, password_hash) - redeem an approval key

Reads and writes of a single request run under a per-id lock inside a
``BEGIN IMMEDIATE`` transaction; emails are sent only after commit.
"""

import asyncio
import logging
import uuid
import weakref
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Tuple

import aiosqlite

from app.db import account_requests as ar
from app.errors import (
    EntityAlreadyExistsError,
    EntityNotFoundError,
    InvalidHttpRequestBodyError,
    InvalidOperationError,
)
from app.models.account_request import (
    AccountRequest,
    AccountRequestCreateRequest,
    AccountRequestData,
    AccountRequestStatus,
    AccountRequestUpdateRequest,
)
from app.services import field_validator
from app.services.account_request_updates import (
    SendAccountJoinEmail,
    check_mandatory_fields,
    parse_request_id,
    plan_update,
    validate_fields,
)
from app.services.notifications import dispatch_effects

logger = logging.getLogger(__name__)

_request_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()


def _lock_for(request_id: uuid.UUID) -> asyncio.Lock:
    key = str(request_id)
    lock = _request_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _request_locks[key] = lock
    return lock


@asynccontextmanager
async def _exclusive(db: aiosqlite.Connection, request_id: uuid.UUID):
    """Serialize read-validate-write for one request id; roll back on error."""
    async with _lock_for(request_id):
        await db.execute("BEGIN IMMEDIATE")
        try:
            yield
        except BaseException:
            await db.rollback()
            raise
        await db.commit()


def not_found_message(request_id) -> str:
    return f"Account request with id = {request_id} not found"


async def get_account_request_or_404(db: aiosqlite.Connection, raw_id) -> AccountRequest:
    request_id = parse_request_id(raw_id)
    entity = await ar.get_account_request(db, request_id)
    if entity is None:
        raise EntityNotFoundError(not_found_message(request_id))
    return entity


async def update_account_request(
    db: aiosqlite.Connection,
    raw_id,
    payload: AccountRequestUpdateRequest,
    sender,
) -> AccountRequestData:
    """Edit an account request as an admin.

    Order of checks: id syntax, null fields, existence, field validation.
    Any failure leaves the stored request untouched.
    """
    request_id = parse_request_id(raw_id)
    update = check_mandatory_fields(payload)

    async with _exclusive(db, request_id):
        current = await ar.get_account_request(db, request_id)
        if current is None:
            raise EntityNotFoundError(not_found_message(request_id))

        validate_fields(update)

        plan = plan_update(current, update)
        if current.status == AccountRequestStatus.REGISTERED and update.status != AccountRequestStatus.REGISTERED:
            logger.info("Account request %s is registered; keeping status instead of %s",
                        request_id, update.status.value)

        await ar.save_account_request(db, plan.updated)

    if plan.sends_notification:
        logger.info("Account request %s approved; sending join email to %s", request_id, plan.updated.email)
    dispatch_effects(plan.effects, sender)

    return AccountRequestData.from_entity(plan.updated)


async def reset_account_request(db: aiosqlite.Connection, raw_id, sender) -> AccountRequestData:
    """Undo a registration so the instructor can register again with a new key."""
    request_id = parse_request_id(raw_id)

    async with _exclusive(db, request_id):
        current = await ar.get_account_request(db, request_id)
        if current is None:
            raise EntityNotFoundError(not_found_message(request_id))

        if current.registered_at is None:
            raise InvalidOperationError("Unable to reset account request as instructor is still unregistered.")

        updated = current.model_copy(update={
            "status": AccountRequestStatus.APPROVED,
            "registered_at": None,
            "registration_key": ar.generate_registration_key(),
        })
        await ar.save_account_request(db, updated)

    logger.info("Account request %s reset; sending new join email to %s", request_id, updated.email)
    dispatch_effects(
        [SendAccountJoinEmail(email=updated.email, name=updated.name, registration_key=updated.registration_key)],
        sender,
    )
    return AccountRequestData.from_entity(updated)


async def register_instructor(
    db: aiosqlite.Connection,
    registration_key: str,
    password_hash: str,
) -> Tuple[AccountRequest, int]:
    """Create the instructor user for an APPROVED request and mark it REGISTERED.

    The request is re-read under the per-id lock, so a concurrent admin edit
    is either fully before or fully after the registration.  Only the status
    and registration time are written back.
    """
    found = await ar.get_account_request_by_key(db, registration_key)
    if found is None:
        raise InvalidHttpRequestBodyError("Invalid registration key")
    request_id = uuid.UUID(found.id)

    async with _exclusive(db, request_id):
        current = await ar.get_account_request(db, request_id)
        if current is None or current.registration_key != registration_key:
            raise InvalidHttpRequestBodyError("Invalid registration key")

        if current.status == AccountRequestStatus.REGISTERED:
            raise EntityAlreadyExistsError("This account request has already been used to register")

        if current.status != AccountRequestStatus.APPROVED:
            raise InvalidOperationError("This account request has not been approved")

        email = current.email.lower()
        cursor = await db.execute("SELECT id FROM users WHERE email = ?", (email,))
        if await cursor.fetchone():
            raise EntityAlreadyExistsError("Email already registered")

        cursor = await db.execute(
            """INSERT INTO users (name, email, password_hash, role, institute)
               VALUES (?, ?, ?, 'instructor', ?)""",
            (current.name, email, password_hash, current.institute),
        )
        user_id = cursor.lastrowid

        registered_at = datetime.now(timezone.utc).isoformat()
        await ar.mark_account_request_registered(db, request_id, registered_at)

    logger.info("Account request %s registered as instructor %s", request_id, user_id)
    registered = current.model_copy(update={
        "status": AccountRequestStatus.REGISTERED,
        "registered_at": registered_at,
    })
    return registered, user_id


async def create_account_request(db: aiosqlite.Connection, payload: AccountRequestCreateRequest) -> AccountRequestData:
    for field in ("name", "email", "institute"):
        if getattr(payload, field) is None:
            raise InvalidHttpRequestBodyError(f"{field} cannot be null")

    name = payload.name.strip()
    email = payload.email.strip()
    institute = payload.institute.strip()

    error = field_validator.get_invalidity_info_for_account_request(name, email, institute)
    if error is not None:
        raise InvalidHttpRequestBodyError(error)

    comments = payload.comments.strip() if payload.comments else None
    entity = await ar.create_account_request(db, name, email, institute, comments or None)
    logger.info("New account request %s from %s (%s)", entity.id, entity.email, entity.institute)
    return AccountRequestData.from_entity(entity)
