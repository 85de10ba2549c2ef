from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AccountRequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    REGISTERED = "REGISTERED"


class AccountRequest(BaseModel):
    """A stored account request row."""

    id: str
    name: str
    email: str
    institute: str
    status: AccountRequestStatus
    comments: Optional[str] = None
    registration_key: str
    created_at: Optional[str] = None
    registered_at: Optional[str] = None


class AccountRequestUpdateRequest(BaseModel):
    # Everything is optional here so the action can report which field is null
    name: Optional[str] = None
    email: Optional[str] = None
    institute: Optional[str] = None
    status: Optional[str] = None
    comments: Optional[str] = None


class AccountRequestCreateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    institute: Optional[str] = None
    comments: Optional[str] = None


class AccountRequestData(BaseModel):
    id: str
    name: str
    email: str
    institute: str
    status: AccountRequestStatus
    comments: Optional[str] = None
    created_at: Optional[str] = None
    registered_at: Optional[str] = None

    @classmethod
    def from_entity(cls, entity: AccountRequest) -> "AccountRequestData":
        return cls(**entity.model_dump(exclude={"registration_key"}))


class AccountRequestsData(BaseModel):
    account_requests: list[AccountRequestData] = []


class MessageOutput(BaseModel):
    message: str
