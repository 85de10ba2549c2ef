"""
notifications.py - Outgoing email for the account request workflow

Provides:
- EmailWrapper / build_account_join_email(...) - render emails from templates/emails.yaml
- ConsoleEmailSender, MemoryEmailSender - delivery backends (selected by EMAIL_BACKEND)
- dispatch_effects(effects, sender) - run the side effects planned by an action
- get_email_sender() - FastAPI dependency for the configured sender
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List
from urllib.parse import urlencode

import yaml

from app.config import settings
from app.services.account_request_updates import SendAccountJoinEmail

logger = logging.getLogger(__name__)

TEMPLATES_PATH = Path(__file__).resolve().parents[1] / "templates" / "emails.yaml"


@dataclass(frozen=True)
class EmailWrapper:
    recipient: str
    subject: str
    body: str
    sender: str = ""


@lru_cache(maxsize=1)
def load_email_templates() -> dict:
    with open(TEMPLATES_PATH, encoding="utf-8") as f:
        return yaml.safe_load(f)


def build_join_link(registration_key: str) -> str:
    return f"{settings.frontend_url.rstrip('/')}/register?{urlencode({'key': registration_key})}"


def build_account_join_email(email: str, name: str, registration_key: str) -> EmailWrapper:
    template = load_email_templates()["new_instructor_account_join"]
    values = {
        "app_name": settings.app_name,
        "name": name,
        "join_link": build_join_link(registration_key),
    }
    return EmailWrapper(
        recipient=email,
        subject=template["subject"].format(**values),
        body=template["body"].format(**values),
        sender=settings.email_sender,
    )


class ConsoleEmailSender:
    """Writes emails to the log instead of delivering them."""

    def send(self, email: EmailWrapper) -> None:
        logger.info("Email to %s: %s\n%s", email.recipient, email.subject, email.body)


class MemoryEmailSender:
    """Keeps the most recent ``max_size`` sent emails in ``outbox``."""

    def __init__(self, max_size: int = 1000):
        self.max_size = max_size
        self.outbox: List[EmailWrapper] = []

    def send(self, email: EmailWrapper) -> None:
        self.outbox.append(email)
        if len(self.outbox) > self.max_size:
            del self.outbox[0]


def render_effect(effect) -> EmailWrapper:
    if isinstance(effect, SendAccountJoinEmail):
        return build_account_join_email(effect.email, effect.name, effect.registration_key)
    raise TypeError(f"Unknown effect: {effect!r}")


def dispatch_effects(effects: Iterable, sender) -> int:
    """Send one email per effect. Returns how many were handed to the sender.

    Runs after the update has been committed, so a rendering or delivery
    failure is logged and the remaining effects still run; nothing is retried.
    """
    sent = 0
    for effect in effects:
        try:
            sender.send(render_effect(effect))
            sent += 1
        except Exception:
            logger.exception("Failed to send %r", effect)
    return sent


@lru_cache(maxsize=1)
def _configured_sender():
    if settings.email_backend == "memory":
        return MemoryEmailSender()
    return ConsoleEmailSender()


def get_email_sender():
    """FastAPI dependency returning the sender selected by EMAIL_BACKEND."""
    return _configured_sender()
