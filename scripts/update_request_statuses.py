# scripts/update_request_statuses.py
"""
Spread the test user's requests across all statuses (development only).

Roughly 40% OPEN, 30% IN_PROGRESS, 20% COMPLETED and 10% CANCELLED, applied
with the requester's status-only override.

Usage:
    python -m scripts.update_request_statuses
"""
import sys
from collections import Counter

from sqlmodel import Session

from app.core.auth import AuthenticatedIdentity
from app.core.config import get_settings
from app.core.errors import AppError
from app.database import engine
from app.models.request import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_OPEN,
    STATUSES,
)
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.user_repo import UserRepository
from app.schemas.request import RequestRead, RequestUpdate
from app.services.request_service import MAX_PAGE_SIZE, RequestService

OWNER_EMAIL = "testuser1@example.com"


def status_for(index: int, total: int) -> str:
    if index < int(total * 0.4):
        return STATUS_OPEN
    if index < int(total * 0.7):
        return STATUS_IN_PROGRESS
    if index < int(total * 0.9):
        return STATUS_COMPLETED
    return STATUS_CANCELLED


def fetch_all_requests(session: Session, service: RequestService) -> list[RequestRead]:
    """Page through the listing, MAX_PAGE_SIZE at a time."""
    requests: list[RequestRead] = []
    offset = 0
    while True:
        page = service.list_requests(session, limit=MAX_PAGE_SIZE, offset=offset)
        requests.extend(page.requests)
        if not page.pagination.has_more:
            return requests
        offset += MAX_PAGE_SIZE


def update_request_statuses(
    session: Session,
    owner_email: str = OWNER_EMAIL,
) -> tuple[Counter, list[str]]:
    """
    Returns:
        (count per applied status, error messages)

    Requests owned by other users are reported as errors (403).

    Raises:
        LookupError: if the owner does not exist.
    """
    users = UserRepository()
    owner = users.get_by_email(session, owner_email)
    if owner is None:
        raise LookupError(f"User {owner_email} not found; run scripts.create_test_users first")

    service = RequestService(RequestRepository(), users, MessageRepository())
    identity = AuthenticatedIdentity.from_user(owner)
    requests = fetch_all_requests(session, service)

    applied: Counter = Counter({status: 0 for status in STATUSES})
    errors: list[str] = []
    for index, request in enumerate(requests):
        status = status_for(index, len(requests))
        try:
            service.update_request(
                session, identity, request.id, RequestUpdate(status=status)
            )
            applied[status] += 1
        except AppError as exc:
            session.rollback()
            errors.append(f"Request {request.id}: {exc.detail}")
    return applied, errors


def main() -> int:
    if get_settings().ENVIRONMENT == "production":
        print("Refusing to rewrite request statuses in production.")
        return 1

    with Session(engine) as session:
        try:
            applied, errors = update_request_statuses(session)
        except LookupError as exc:
            print(exc)
            return 1

    if not sum(applied.values()) and not errors:
        print("No requests found. Run scripts.create_sample_requests first.")
        return 0

    print("Status distribution:")
    for status in STATUSES:
        print(f"  {status}: {applied[status]}")
    for error in errors:
        print(f"  - {error}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
