"""Shared fixtures: a fresh migrated SQLite file per test, seeded account
requests, auth headers and an in-memory email outbox."""

import asyncio
import os

import pytest

# Settings are read at import time
os.environ.setdefault("JWT_SECRET", "test-secret-for-account-requests-0123456789")
os.environ.setdefault("EMAIL_BACKEND", "memory")

from fastapi.testclient import TestClient

from app.config import settings
from app.db import account_requests as ar
from app.db.database import connect
from app.middleware.rate_limit import auth_limiter
from app.models.account_request import AccountRequestStatus
from app.routes.auth import create_token, hash_password
from app.server import app
from app.services.notifications import MemoryEmailSender, get_email_sender


def run(coro):
    return asyncio.run(coro)


async def _with_db(fn, *args, **kwargs):
    db = await connect()
    try:
        return await fn(db, *args, **kwargs)
    finally:
        await db.close()


def db_call(fn, *args, **kwargs):
    """Run an ``async fn(db, ...)`` helper against the test database."""
    return run(_with_db(fn, *args, **kwargs))


async def _insert_user(db, name, email, role, password="password123"):
    cursor = await db.execute(
        "INSERT INTO users (name, email, password_hash, role) VALUES (?, ?, ?, ?)",
        (name, email, hash_password(password), role),
    )
    await db.commit()
    return cursor.lastrowid


async def _seed_request(db, name, email, institute, comments, status, registered_at=None):
    entity = await ar.create_account_request(db, name, email, institute, comments)
    entity = entity.model_copy(update={"status": status, "registered_at": registered_at})
    await ar.save_account_request(db, entity)
    await db.commit()
    return entity


def insert_user(name, email, role, password="password123"):
    return db_call(_insert_user, name, email, role, password)


def seed_request(name, email, institute, comments=None, status=AccountRequestStatus.PENDING, registered_at=None):
    return db_call(_seed_request, name, email, institute, comments, status, registered_at)


def load_request(request_id):
    return db_call(ar.get_account_request, request_id)


@pytest.fixture
def database_path(tmp_path, monkeypatch):
    path = tmp_path / "account_requests_test.db"
    monkeypatch.setattr(settings, "database_path", str(path))
    return path


@pytest.fixture
def outbox():
    sender = MemoryEmailSender()
    app.dependency_overrides[get_email_sender] = lambda: sender
    yield sender
    app.dependency_overrides.pop(get_email_sender, None)


@pytest.fixture
def client(database_path, outbox):
    auth_limiter.reset()
    with TestClient(app) as c:
        yield c
    auth_limiter.reset()


@pytest.fixture
def admin_headers(client):
    user_id = insert_user("Site Admin", "admin@peerfeedback.test", "admin")
    token = create_token(user_id, "admin@peerfeedback.test", "admin")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def instructor_headers(client):
    user_id = insert_user("Ian Instructor", "instructor1@peerfeedback.test", "instructor")
    token = create_token(user_id, "instructor1@peerfeedback.test", "instructor")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def typical_requests(client):
    """A small set of account requests in each interesting state."""
    return {
        "unregistered_instructor1": seed_request(
            "Unregistered Instructor 1", "unregisteredinstructor1@gmail.tmt", "Test Institute 1",
            comments="Please approve", status=AccountRequestStatus.PENDING,
        ),
        "unregistered_instructor2": seed_request(
            "Unregistered Instructor 2", "unregisteredinstructor2@gmail.tmt", "Test Institute 2",
            comments=None, status=AccountRequestStatus.PENDING,
        ),
        "approved_instructor": seed_request(
            "Approved Instructor", "approved@gmail.tmt", "Test Institute 3",
            status=AccountRequestStatus.APPROVED,
        ),
        "instructor2": seed_request(
            "Instructor 2", "instr2@course1.tmt", "Test Institute 1",
            comments="Registered already", status=AccountRequestStatus.REGISTERED,
            registered_at="2026-01-15T10:00:00+00:00",
        ),
    }
