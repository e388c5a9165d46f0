# app/routers/requests.py
from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session

from app.core.auth import AuthenticatedIdentity, require_auth
from app.core.rate_limit import enforce_public_rate_limit
from app.database import get_session
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.user_repo import UserRepository
from app.schemas.message import MessageCreate, MessageListRead, MessageRead
from app.schemas.request import (
    MAX_CITY_FILTER_LENGTH,
    ActionResult,
    Category,
    FulfillResult,
    PublicRequestListRead,
    RequestCreate,
    RequestDetailRead,
    RequestListRead,
    RequestRead,
    RequestStatus,
    RequestUpdate,
)
from app.services.message_service import MessageService
from app.services.request_service import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    RequestService,
)

router = APIRouter(prefix="/requests", tags=["Requests"])

request_repo = RequestRepository()
user_repo = UserRepository()
message_repo = MessageRepository()
service = RequestService(request_repo, user_repo, message_repo)
messages = MessageService(message_repo, request_repo, user_repo)


# -------- Public endpoint --------


@router.get(
    "/public",
    response_model=PublicRequestListRead,
    dependencies=[Depends(enforce_public_rate_limit)],
)
def list_public_requests(
    session: Session = Depends(get_session),
    category: Category | None = None,
    status: RequestStatus | None = None,
    delivery_city: str | None = Query(default=None, max_length=MAX_CITY_FILTER_LENGTH),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
):
    """
    Browse requests without logging in.

    Rate-limited per client address; sourcing details and contact fields
    are left out.
    """
    return service.list_public_requests(
        session, category, status, delivery_city, limit, offset
    )


# -------- Authenticated endpoints --------


@router.get("", response_model=RequestListRead)
def list_requests(
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
    category: Category | None = None,
    status: RequestStatus | None = None,
    delivery_city: str | None = Query(default=None, max_length=MAX_CITY_FILTER_LENGTH),
    limit: int = Query(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(default=0, ge=0),
):
    """
    List requests, newest first.
    """
    return service.list_requests(session, category, status, delivery_city, limit, offset)


@router.post(
    "",
    response_model=RequestRead,
    status_code=status.HTTP_201_CREATED,
)
def create_request(
    payload: RequestCreate,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """
    Post a new request owned by the caller (status OPEN).
    """
    return service.create_request(session, current_user, payload)


@router.get("/{request_id}", response_model=RequestDetailRead)
def get_request(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """
    Get a single request. Messages are included for participants only.
    """
    return service.get_request(session, current_user, request_id)


@router.put("/{request_id}", response_model=RequestRead)
def update_request(
    request_id: int,
    payload: RequestUpdate,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """
    Update a request (requester only).

    Field edits require status OPEN. A body with only `status` overrides
    the status regardless of the current one.
    """
    return service.update_request(session, current_user, request_id, payload)


@router.delete("/{request_id}", response_model=ActionResult)
def cancel_request(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """
    Cancel an OPEN request (requester only).
    """
    return service.cancel_request(session, current_user, request_id)


@router.delete("/{request_id}/delete", response_model=ActionResult)
def delete_request(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """
    Permanently delete a request and its messages (requester only, any status).
    """
    return service.delete_request(session, current_user, request_id)


@router.post("/{request_id}/fulfill", response_model=FulfillResult)
def fulfill_request(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """
    Accept an OPEN request for delivery.

      - 400 if not OPEN, own request, or already fulfilling
      - 409 if someone else claimed it concurrently
    """
    return service.fulfill_request(session, current_user, request_id)


# -------- Messages --------


@router.get("/{request_id}/messages", response_model=MessageListRead)
def list_messages(
    request_id: int,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """Messages of a request, oldest first (participants only)."""
    return messages.list_messages(session, current_user, request_id)


@router.post(
    "/{request_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    request_id: int,
    payload: MessageCreate,
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """Post a message (participants only, not on cancelled requests)."""
    return messages.send_message(session, current_user, request_id, payload)
