"""Tests for email rendering and effect dispatch."""

import logging

from app.services import notifications
from app.services.account_request_updates import SendAccountJoinEmail
from app.services.notifications import (
    ConsoleEmailSender,
    MemoryEmailSender,
    build_account_join_email,
    build_join_link,
    dispatch_effects,
    load_email_templates,
)


class _FailingSender:
    def __init__(self):
        self.attempts = 0

    def send(self, email):
        self.attempts += 1
        raise ConnectionError("mail server down")


class TestTemplates:

    def test_templates_load(self):
        templates = load_email_templates()
        assert "new_instructor_account_join" in templates
        assert {"subject", "body"} <= set(templates["new_instructor_account_join"])

    def test_join_email(self):
        email = build_account_join_email("jane@uni.edu", "Jane Doe", "abc_123-XYZ")

        assert email.recipient == "jane@uni.edu"
        assert email.subject == "PeerFeedback: Your instructor account request has been approved"
        assert "Hello Jane Doe," in email.body
        assert build_join_link("abc_123-XYZ") in email.body
        assert email.sender

    def test_join_link(self):
        assert build_join_link("k/e y") == "http://localhost:8000/register?key=k%2Fe+y"


class TestDispatchEffects:

    def test_one_email_per_effect(self):
        sender = MemoryEmailSender()

        sent = dispatch_effects([SendAccountJoinEmail("a@x.com", "A", "k1")], sender)

        assert sent == 1
        assert [e.recipient for e in sender.outbox] == ["a@x.com"]

    def test_no_effects_no_email(self):
        sender = MemoryEmailSender()

        assert dispatch_effects((), sender) == 0
        assert sender.outbox == []

    def test_failure_is_logged_not_raised_or_retried(self, caplog):
        sender = _FailingSender()

        with caplog.at_level(logging.ERROR, logger="app.services.notifications"):
            sent = dispatch_effects([SendAccountJoinEmail("a@x.com", "A", "k1")], sender)

        assert sent == 0
        assert sender.attempts == 1
        assert "Failed to send" in caplog.text
        assert "a@x.com" in caplog.text

    def test_console_sender_logs(self, caplog):
        email = build_account_join_email("jane@uni.edu", "Jane Doe", "key")

        with caplog.at_level(logging.INFO, logger="app.services.notifications"):
            ConsoleEmailSender().send(email)

        assert "Email to jane@uni.edu" in caplog.text

    def test_render_failure_is_logged_not_raised(self, monkeypatch, caplog):
        monkeypatch.setattr(notifications, "load_email_templates", lambda: {})
        sender = MemoryEmailSender()

        with caplog.at_level(logging.ERROR, logger="app.services.notifications"):
            sent = dispatch_effects([SendAccountJoinEmail("a@x.com", "A", "k1")], sender)

        assert sent == 0
        assert sender.outbox == []
        assert "Failed to send" in caplog.text

    def test_unknown_effect_does_not_stop_the_rest(self):
        sender = MemoryEmailSender()

        sent = dispatch_effects([object(), SendAccountJoinEmail("b@x.com", "B", "k2")], sender)

        assert sent == 1
        assert [e.recipient for e in sender.outbox] == ["b@x.com"]

    def test_memory_outbox_keeps_most_recent(self):
        sender = MemoryEmailSender(max_size=2)

        dispatch_effects([SendAccountJoinEmail(f"{i}@x.com", "N", "k") for i in range(3)], sender)

        assert [e.recipient for e in sender.outbox] == ["1@x.com", "2@x.com"]


class TestNotificationFailureDuringUpdate:

    def test_update_succeeds_when_email_fails(self, client, admin_headers, typical_requests):
        from app.server import app
        from app.services.notifications import get_email_sender

        failing = _FailingSender()
        app.dependency_overrides[get_email_sender] = lambda: failing
        account_request = typical_requests["unregistered_instructor1"]

        resp = client.put("/api/admin/account-request", params={"id": account_request.id}, headers=admin_headers,
                          json={"name": "newName", "email": "new@email.com", "institute": "newInstitute",
                                "status": "APPROVED", "comments": None})

        assert resp.status_code == 200
        assert resp.json()["status"] == "APPROVED"
        assert failing.attempts == 1

    def test_update_succeeds_when_template_is_broken(self, client, admin_headers, typical_requests, outbox,
                                                     monkeypatch):
        monkeypatch.setattr(notifications, "load_email_templates", lambda: {})
        account_request = typical_requests["unregistered_instructor1"]

        resp = client.put("/api/admin/account-request", params={"id": account_request.id}, headers=admin_headers,
                          json={"name": "newName", "email": "new@email.com", "institute": "newInstitute",
                                "status": "APPROVED", "comments": None})

        assert resp.status_code == 200
        assert resp.json()["status"] == "APPROVED"
        assert outbox.outbox == []
