"""Tests for login, instructor registration and the auth rate limiter."""

import uuid

import pytest

from conftest import insert_user, load_request
from app.middleware.rate_limit import RateLimiter
from app.models.account_request import AccountRequestStatus


def _approve(client, admin_headers, account_request):
    resp = client.put("/api/admin/account-request", params={"id": account_request.id}, headers=admin_headers, json={
        "name": account_request.name,
        "email": account_request.email,
        "institute": account_request.institute,
        "status": "APPROVED",
        "comments": account_request.comments,
    })
    assert resp.status_code == 200


class TestLogin:

    def test_login_and_me(self, client):
        insert_user("Site Admin", "admin@peerfeedback.test", "admin", password="s3cretpass")

        resp = client.post("/api/auth/login", json={"email": "Admin@PeerFeedback.test", "password": "s3cretpass"})

        assert resp.status_code == 200
        token = resp.json()["token"]
        assert resp.json()["role"] == "admin"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "admin@peerfeedback.test"

    def test_wrong_password(self, client):
        insert_user("Site Admin", "admin@peerfeedback.test", "admin", password="s3cretpass")

        resp = client.post("/api/auth/login", json={"email": "admin@peerfeedback.test", "password": "nope-nope"})

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid email or password"

    def test_login_is_rate_limited(self, client):
        for _ in range(10):
            client.post("/api/auth/login", json={"email": "ghost@x.com", "password": "whatever1"})

        resp = client.post("/api/auth/login", json={"email": "ghost@x.com", "password": "whatever1"})

        assert resp.status_code == 429
        assert int(resp.headers["Retry-After"]) >= 1


class TestInstructorRegistration:

    def test_register_with_approved_key(self, client, admin_headers, typical_requests, outbox):
        account_request = typical_requests["unregistered_instructor1"]
        _approve(client, admin_headers, account_request)

        resp = client.post("/api/auth/instructor/register", json={
            "registration_key": account_request.registration_key,
            "password": "instructorpass",
        })

        assert resp.status_code == 200
        assert resp.json()["role"] == "instructor"
        assert resp.json()["email"] == account_request.email

        stored = load_request(uuid.UUID(account_request.id))
        assert stored.status == AccountRequestStatus.REGISTERED
        assert stored.registered_at is not None

        login = client.post("/api/auth/login", json={"email": account_request.email, "password": "instructorpass"})
        assert login.status_code == 200

    def test_registered_request_stays_registered_after_admin_edit(
        self, client, admin_headers, typical_requests, outbox
    ):
        account_request = typical_requests["unregistered_instructor1"]
        _approve(client, admin_headers, account_request)
        client.post("/api/auth/instructor/register", json={
            "registration_key": account_request.registration_key, "password": "instructorpass",
        })

        _approve(client, admin_headers, account_request)

        assert load_request(uuid.UUID(account_request.id)).status == AccountRequestStatus.REGISTERED
        # Only the first approval mailed a link
        assert len(outbox.outbox) == 1

    def test_pending_key_is_rejected(self, client, typical_requests):
        account_request = typical_requests["unregistered_instructor1"]

        resp = client.post("/api/auth/instructor/register", json={
            "registration_key": account_request.registration_key, "password": "instructorpass",
        })

        assert resp.status_code == 400
        assert resp.json()["message"] == "This account request has not been approved"

    def test_registered_key_is_rejected(self, client, typical_requests):
        account_request = typical_requests["instructor2"]

        resp = client.post("/api/auth/instructor/register", json={
            "registration_key": account_request.registration_key, "password": "instructorpass",
        })

        assert resp.status_code == 409

    def test_unknown_key(self, client):
        resp = client.post("/api/auth/instructor/register", json={
            "registration_key": "does-not-exist", "password": "instructorpass",
        })

        assert resp.status_code == 400
        assert resp.json()["message"] == "Invalid registration key"

    def test_short_password(self, client, typical_requests):
        resp = client.post("/api/auth/instructor/register", json={
            "registration_key": typical_requests["approved_instructor"].registration_key, "password": "short",
        })

        assert resp.status_code == 400
        assert "password" in resp.json()["message"]


class TestRateLimiter:

    def test_sliding_window(self):
        now = [0.0]
        limiter = RateLimiter(max_attempts=2, window_seconds=10, clock=lambda: now[0])

        assert limiter.is_allowed("ip")
        assert limiter.is_allowed("ip")
        assert not limiter.is_allowed("ip")
        assert limiter.get_retry_after("ip") == 10

        now[0] = 4.5
        assert limiter.get_retry_after("ip") == 6

        now[0] = 10.0
        assert limiter.get_retry_after("ip") == 0
        assert limiter.is_allowed("ip")

    def test_keys_are_independent(self):
        limiter = RateLimiter(max_attempts=1, window_seconds=60)

        assert limiter.is_allowed("a")
        assert limiter.is_allowed("b")
        assert not limiter.is_allowed("a")

    @pytest.mark.parametrize("attempts", [0, 1])
    def test_retry_after_zero_when_under_limit(self, attempts):
        limiter = RateLimiter(max_attempts=2, window_seconds=60)
        for _ in range(attempts):
            limiter.is_allowed("ip")
        assert limiter.get_retry_after("ip") == 0
