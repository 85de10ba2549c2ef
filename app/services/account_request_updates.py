"""
account_request_updates.py - Pure rules for editing an account request

Nothing here touches the database or sends email.  ``plan_update`` turns the
stored request plus an admin's payload into the values to persist and the
side effects to run once they are committed.
"""

import uuid
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from app.errors import InvalidHttpParameterError, InvalidHttpRequestBodyError
from app.models.account_request import (
    AccountRequest,
    AccountRequestStatus,
    AccountRequestUpdateRequest,
)
from app.services import field_validator

ACCOUNT_REQUEST_ID_PARAM = "id"

# Order in which missing fields are reported
MANDATORY_UPDATE_FIELDS = ("name", "email", "institute", "status")


@dataclass(frozen=True)
class SendAccountJoinEmail:
    """Mail the registration link of an approved request."""

    email: str
    name: str
    registration_key: str


Effect = Union[SendAccountJoinEmail]


@dataclass(frozen=True)
class UpdatePlan:
    updated: AccountRequest
    effects: Tuple[Effect, ...] = ()

    @property
    def sends_notification(self) -> bool:
        return len(self.effects) > 0


@dataclass(frozen=True)
class ValidatedUpdate:
    name: str
    email: str
    institute: str
    status: AccountRequestStatus
    comments: Optional[str]


def parse_request_id(raw: Optional[str]) -> uuid.UUID:
    if raw is None:
        raise InvalidHttpParameterError(f"The [{ACCOUNT_REQUEST_ID_PARAM}] HTTP parameter was not found.")
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise InvalidHttpParameterError(f"Invalid UUID string: {raw}")


def parse_status(raw: str) -> AccountRequestStatus:
    try:
        return AccountRequestStatus(raw.upper())
    except ValueError:
        allowed = ", ".join(s.value for s in AccountRequestStatus)
        raise InvalidHttpRequestBodyError(f"Invalid account request status: {raw}. Must be one of: {allowed}")


def check_mandatory_fields(payload: AccountRequestUpdateRequest) -> ValidatedUpdate:
    """Reject payloads with a null mandatory field; comments may be null."""
    for field in MANDATORY_UPDATE_FIELDS:
        if getattr(payload, field) is None:
            raise InvalidHttpRequestBodyError(f"{field} cannot be null")

    return ValidatedUpdate(
        name=payload.name,
        email=payload.email,
        institute=payload.institute,
        status=parse_status(payload.status),
        comments=payload.comments,
    )


def validate_fields(update: ValidatedUpdate) -> None:
    error = field_validator.get_invalidity_info_for_account_request(
        update.name, update.email, update.institute
    )
    if error is not None:
        raise InvalidHttpRequestBodyError(error)


def is_approvable_transition(previous: AccountRequestStatus, requested: AccountRequestStatus) -> bool:
    return previous != AccountRequestStatus.REGISTERED and requested == AccountRequestStatus.APPROVED


def plan_update(current: AccountRequest, update: ValidatedUpdate) -> UpdatePlan:
    """Compute the persisted state and the side effects of an update.

    A REGISTERED request stays REGISTERED whatever status is requested; the
    other fields are still overwritten.  Requesting APPROVED for a request
    that is not yet registered mails the registration link to the new email
    address, including when it was already APPROVED.
    """
    if current.status == AccountRequestStatus.REGISTERED:
        status = AccountRequestStatus.REGISTERED
    else:
        status = update.status

    updated = current.model_copy(update={
        "name": update.name,
        "email": update.email,
        "institute": update.institute,
        "status": status,
        "comments": update.comments,
    })

    effects: Tuple[Effect, ...] = ()
    if is_approvable_transition(current.status, update.status):
        effects = (SendAccountJoinEmail(
            email=updated.email,
            name=updated.name,
            registration_key=updated.registration_key,
        ),)

    return UpdatePlan(updated=updated, effects=effects)
