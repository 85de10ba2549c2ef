"""
Instructor account request endpoints.

Admin-only review endpoints live under /api/admin; the public form that
creates a request is POST /api/account-request.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from app.db.database import get_db
from app.db import account_requests as ar
from app.errors import InvalidHttpParameterError, InvalidHttpRequestBodyError
from app.models.account_request import (
    AccountRequestCreateRequest,
    AccountRequestData,
    AccountRequestsData,
    AccountRequestUpdateRequest,
    MessageOutput,
)
from app.routes.auth import require_role
from app.services import account_request_actions as actions
from app.services.account_request_updates import parse_request_id, parse_status
from app.services.notifications import get_email_sender

router = APIRouter(tags=["account-requests"])

_admin_role = require_role("admin")


async def require_admin(request: Request, db=Depends(get_db)) -> dict:
    """Admin check, resolved before query and body parameters are validated."""
    return await _admin_role(request, db)


@router.get(
    "/api/admin/account-request",
    response_model=AccountRequestData,
    dependencies=[Depends(require_admin)],
)
async def get_account_request(
    request_id: Optional[str] = Query(default=None, alias="id"),
    db=Depends(get_db),
):
    entity = await actions.get_account_request_or_404(db, request_id)
    return AccountRequestData.from_entity(entity)


@router.put(
    "/api/admin/account-request",
    response_model=AccountRequestData,
    dependencies=[Depends(require_admin)],
)
async def update_account_request(
    body: AccountRequestUpdateRequest,
    request_id: Optional[str] = Query(default=None, alias="id"),
    db=Depends(get_db),
    sender=Depends(get_email_sender),
):
    """Edit an account request.

    Approving a request that is not yet registered emails the registration
    link. Registered requests keep their REGISTERED status.
    """
    return await actions.update_account_request(db, request_id, body, sender)


@router.delete(
    "/api/admin/account-request",
    response_model=MessageOutput,
    dependencies=[Depends(require_admin)],
)
async def delete_account_request(
    request_id: Optional[str] = Query(default=None, alias="id"),
    db=Depends(get_db),
):
    """Delete an account request. Deleting a missing request is not an error."""
    await ar.delete_account_request(db, parse_request_id(request_id))
    return MessageOutput(message="Account request successfully deleted.")


@router.put(
    "/api/admin/account-request/reset",
    response_model=AccountRequestData,
    dependencies=[Depends(require_admin)],
)
async def reset_account_request(
    request_id: Optional[str] = Query(default=None, alias="id"),
    db=Depends(get_db),
    sender=Depends(get_email_sender),
):
    return await actions.reset_account_request(db, request_id, sender)


@router.get(
    "/api/admin/account-requests",
    response_model=AccountRequestsData,
    dependencies=[Depends(require_admin)],
)
async def list_account_requests(
    status: Optional[str] = Query(default=None),
    db=Depends(get_db),
):
    status_filter = None
    if status:
        try:
            status_filter = parse_status(status)
        except InvalidHttpRequestBodyError as e:
            raise InvalidHttpParameterError(e.message)
    entities = await ar.list_account_requests(db, status_filter)
    return AccountRequestsData(account_requests=[AccountRequestData.from_entity(e) for e in entities])


@router.get(
    "/api/admin/account-requests/search",
    response_model=AccountRequestsData,
    dependencies=[Depends(require_admin)],
)
async def search_account_requests(
    q: str = Query(default="", max_length=200),
    db=Depends(get_db),
):
    if not q.strip():
        return AccountRequestsData()
    entities = await ar.search_account_requests(db, q)
    return AccountRequestsData(account_requests=[AccountRequestData.from_entity(e) for e in entities])


@router.post("/api/account-request", response_model=AccountRequestData)
async def create_account_request(body: AccountRequestCreateRequest, db=Depends(get_db)):
    """Public form: ask for an instructor account."""
    return await actions.create_account_request(db, body)
