# app/services/request_service.py
import logging
from datetime import datetime, timezone

from sqlmodel import Session

from app.core.auth import AuthenticatedIdentity
from app.core.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from app.models.request import (
    FULFILLED_STATUSES,
    Request,
    STATUS_CANCELLED,
    STATUS_OPEN,
)
from app.models.user import User
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.user_repo import UserRepository
from app.schemas.request import (
    ActionResult,
    FulfillResult,
    Pagination,
    PublicRequestListRead,
    PublicRequestRead,
    RequestCreate,
    RequestDetailRead,
    RequestListRead,
    RequestRead,
    RequestUpdate,
)
from app.services.message_service import build_message_reads, can_access_messages

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _contact(user: User | None) -> dict | None:
    if user is None:
        return None
    return {"id": user.id, "name": user.name, "email": user.email, "rating": user.rating}


def _summary(user: User | None) -> dict | None:
    if user is None:
        return None
    return {
        "id": user.id,
        "name": user.name,
        "rating": user.rating,
        "total_requests": user.total_requests,
        "total_deliveries": user.total_deliveries,
    }


class RequestService:
    """
    Business logic for requests (the lifecycle manager).

    State machine over Request.status:

      OPEN -> IN_PROGRESS   fulfill  (caller != requester; atomic, 409 on lost race)
      OPEN -> CANCELLED     cancel   (requester only)
      *    -> *             status override (requester only, status-only payload)

    COMPLETED and CANCELLED admit no further regular transitions.

    Counters:
      - requester.total_requests: +1 on create, -1 on cancel and hard delete
      - fulfiller.total_deliveries: +1 on fulfill
      Each counter moves in the same transaction as its transition.
    """

    def __init__(
        self,
        request_repo: RequestRepository,
        user_repo: UserRepository,
        message_repo: MessageRepository,
    ):
        self.request_repo = request_repo
        self.user_repo = user_repo
        self.message_repo = message_repo

    # -------- Helpers --------

    def _get_or_404(self, session: Session, request_id: int) -> Request:
        request = self.request_repo.get_by_id(session, request_id)
        if request is None:
            raise NotFoundError("Request not found")
        return request

    @staticmethod
    def _ensure_requester(
        request: Request,
        identity: AuthenticatedIdentity,
        action: str,
    ) -> None:
        if request.requester_id != identity.id:
            raise AuthorizationError(f"Not authorized to {action} this request")

    @staticmethod
    def _pagination(total: int, limit: int, offset: int) -> Pagination:
        return Pagination(
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        )

    def _to_reads(self, session: Session, requests: list[Request]) -> list[RequestRead]:
        user_ids = {r.requester_id for r in requests}
        user_ids |= {r.fulfiller_id for r in requests if r.fulfiller_id is not None}
        users = self.user_repo.get_many(session, user_ids)
        counts = self.request_repo.message_counts(session, [r.id for r in requests])

        return [
            RequestRead.model_validate(
                {
                    **r.model_dump(),
                    "requester": _contact(users.get(r.requester_id)),
                    "fulfiller": _contact(users.get(r.fulfiller_id)),
                    "message_count": counts.get(r.id, 0),
                }
            )
            for r in requests
        ]

    def _to_read(self, session: Session, request: Request) -> RequestRead:
        return self._to_reads(session, [request])[0]

    # -------- Listing --------

    def list_requests(
        self,
        session: Session,
        category: str | None = None,
        status: str | None = None,
        delivery_city: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> RequestListRead:
        """
        Filtered, paginated listing for authenticated users.
        """
        filters = self.request_repo.build_filters(
            category, status, (delivery_city or "").strip() or None
        )
        requests = self.request_repo.search(session, filters, offset, limit)
        total = self.request_repo.count(session, filters)
        return RequestListRead(
            requests=self._to_reads(session, requests),
            pagination=self._pagination(total, limit, offset),
        )

    def list_public_requests(
        self,
        session: Session,
        category: str | None = None,
        status: str | None = None,
        delivery_city: str | None = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> PublicRequestListRead:
        """
        Unauthenticated listing; same filters, field-limited projection.
        """
        filters = self.request_repo.build_filters(
            category, status, (delivery_city or "").strip() or None
        )
        requests = self.request_repo.search(session, filters, offset, limit)
        total = self.request_repo.count(session, filters)

        requesters = self.user_repo.get_many(session, {r.requester_id for r in requests})
        counts = self.request_repo.message_counts(session, [r.id for r in requests])
        public = [
            PublicRequestRead.model_validate(
                {
                    **r.model_dump(
                        include=set(PublicRequestRead.model_fields)
                    ),
                    "requester": _summary(requesters.get(r.requester_id)),
                    "message_count": counts.get(r.id, 0),
                }
            )
            for r in requests
        ]
        return PublicRequestListRead(
            requests=public,
            pagination=self._pagination(total, limit, offset),
        )

    # -------- Single request --------

    def create_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        payload: RequestCreate,
    ) -> RequestRead:
        """
        Post a new OPEN request owned by the caller and bump their
        total_requests counter in the same transaction.
        """
        if self.user_repo.get_by_id(session, identity.id) is None:
            raise NotFoundError("User not found")

        request = Request(
            **payload.model_dump(),
            status=STATUS_OPEN,
            requester_id=identity.id,
        )
        request = self.request_repo.create(session, request)
        self.user_repo.adjust_counters(session, identity.id, requests=1)
        session.commit()
        session.refresh(request)

        logger.info("User %s created request %s", identity.id, request.id)
        return self._to_read(session, request)

    def get_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
    ) -> RequestDetailRead:
        """
        Request with requester/fulfiller summaries. The message thread is
        attached only when the caller is a participant.
        """
        request = self._get_or_404(session, request_id)
        data = self._to_read(session, request).model_dump()

        if can_access_messages(identity.id, request):
            messages = self.message_repo.list_for_request(session, request.id)
            data["messages"] = build_message_reads(session, messages, self.user_repo)

        return RequestDetailRead.model_validate(data)

    def update_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
        payload: RequestUpdate,
    ) -> RequestRead:
        """
        Requester-only update.

          - status-only payload: override to any status, whatever the
            current status is
          - any other field: only while the request is OPEN

        Moving to OPEN or CANCELLED via the override clears fulfiller_id.
        """
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")

        request = self._get_or_404(session, request_id)
        self._ensure_requester(request, identity, "update")

        status_only = set(changes) == {"status"}
        if not status_only and request.status != STATUS_OPEN:
            raise ValidationError("Cannot update request that is not open")

        new_status = changes.pop("status", None)
        for field, value in changes.items():
            setattr(request, field, value)

        if new_status is not None and new_status != request.status:
            logger.info(
                "Request %s status override %s -> %s by %s",
                request.id,
                request.status,
                new_status,
                identity.id,
            )
            request.status = new_status
            if new_status not in FULFILLED_STATUSES:
                request.fulfiller_id = None

        request.updated_at = _utcnow()
        request = self.request_repo.update(session, request)
        session.commit()
        session.refresh(request)
        return self._to_read(session, request)

    def cancel_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
    ) -> ActionResult:
        """
        OPEN -> CANCELLED by the requester; decrements total_requests.
        """
        request = self._get_or_404(session, request_id)
        self._ensure_requester(request, identity, "cancel")

        if request.status != STATUS_OPEN:
            raise ValidationError("Cannot cancel request that is not open")

        request.status = STATUS_CANCELLED
        request.updated_at = _utcnow()
        self.request_repo.update(session, request)
        self.user_repo.adjust_counters(session, identity.id, requests=-1)
        session.commit()

        logger.info("User %s cancelled request %s", identity.id, request_id)
        return ActionResult(message="Request cancelled successfully")

    def delete_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
    ) -> ActionResult:
        """
        Hard delete by the requester, at any status.

        Steps (one transaction):
          1. Delete the request's messages.
          2. Delete the request.
          3. Decrement the requester's total_requests.
        """
        request = self._get_or_404(session, request_id)
        self._ensure_requester(request, identity, "delete")

        removed = self.message_repo.delete_for_request(session, request.id)
        self.request_repo.delete(session, request)
        self.user_repo.adjust_counters(session, identity.id, requests=-1)
        session.commit()

        logger.info(
            "User %s deleted request %s (%d messages)", identity.id, request_id, removed
        )
        return ActionResult(message="Request deleted successfully")

    def fulfill_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
    ) -> FulfillResult:
        """
        OPEN -> IN_PROGRESS with the caller as fulfiller.

        Pre-checks (400): request not OPEN, caller is the requester, caller
        already fulfills it. The write itself is a compare-and-set on
        (status=OPEN, fulfiller_id IS NULL); if another fulfiller won in
        between, nothing changes and a 409 is raised.
        """
        request = self._get_or_404(session, request_id)

        if request.status != STATUS_OPEN:
            raise ValidationError("Request is not available for fulfillment")
        if request.requester_id == identity.id:
            raise ValidationError("Cannot fulfill your own request")
        if request.fulfiller_id == identity.id:
            raise ValidationError("You are already fulfilling this request")

        claimed = self.request_repo.claim_for_fulfiller(
            session, request.id, identity.id, _utcnow()
        )
        if not claimed:
            session.rollback()
            logger.info("User %s lost the race for request %s", identity.id, request_id)
            raise ConflictError("Request is no longer available")

        self.user_repo.adjust_counters(session, identity.id, deliveries=1)
        session.commit()
        session.refresh(request)

        logger.info("User %s is fulfilling request %s", identity.id, request_id)
        return FulfillResult(
            message="Request accepted successfully",
            request=self._to_read(session, request),
        )
