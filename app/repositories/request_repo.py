# app/repositories/request_repo.py
from datetime import datetime

from sqlalchemy import update
from sqlmodel import Session, select, func

from app.models.message import Message
from app.models.request import Request, STATUS_IN_PROGRESS, STATUS_OPEN


class RequestRepository:
    """
    Data access layer for requests.

    NOTE:
      - No commits here; lifecycle transitions also move user counters.
        The service is responsible for calling session.commit().
    """

    def get_by_id(self, session: Session, request_id: int) -> Request | None:
        return session.get(Request, request_id)

    # ----- Listing -----

    @staticmethod
    def build_filters(
        category: str | None = None,
        status: str | None = None,
        delivery_city: str | None = None,
    ) -> list:
        """
        WHERE clauses for listing.

        delivery_city is a case-insensitive substring match.
        """
        filters = []
        if category:
            filters.append(Request.category == category)
        if status:
            filters.append(Request.status == status)
        if delivery_city:
            filters.append(
                func.lower(Request.delivery_city).contains(
                    delivery_city.lower(), autoescape=True
                )
            )
        return filters

    def search(
        self,
        session: Session,
        filters: list,
        offset: int = 0,
        limit: int = 20,
    ) -> list[Request]:
        # Newest first; id breaks created_at ties by insertion order.
        stmt = (
            select(Request)
            .where(*filters)
            .order_by(Request.created_at.desc(), Request.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return session.exec(stmt).all()

    def count(self, session: Session, filters: list) -> int:
        stmt = select(func.count()).select_from(Request).where(*filters)
        return session.exec(stmt).one()

    def message_counts(self, session: Session, request_ids: list[int]) -> dict[int, int]:
        """Return {request_id: number of messages} for the given requests."""
        if not request_ids:
            return {}
        stmt = (
            select(Message.request_id, func.count(Message.id))
            .where(Message.request_id.in_(request_ids))
            .group_by(Message.request_id)
        )
        return {request_id: total for request_id, total in session.exec(stmt).all()}

    # ----- Writes -----

    def create(self, session: Session, request: Request) -> Request:
        """
        Insert a Request without committing, but ensure id is populated.
        """
        session.add(request)
        session.flush()
        session.refresh(request)
        return request

    def update(self, session: Session, request: Request) -> Request:
        session.add(request)
        session.flush()
        session.refresh(request)
        return request

    def claim_for_fulfiller(
        self,
        session: Session,
        request_id: int,
        fulfiller_id: int,
        now: datetime,
    ) -> bool:
        """
        Compare-and-set OPEN -> IN_PROGRESS.

        The WHERE clause re-validates status and fulfiller at write time, so
        of two concurrent claims only one matches a row.

        Returns:
            True if this call claimed the request.
        """
        stmt = (
            update(Request)
            .where(
                Request.id == request_id,
                Request.status == STATUS_OPEN,
                Request.fulfiller_id.is_(None),
                Request.requester_id != fulfiller_id,
            )
            .values(
                status=STATUS_IN_PROGRESS,
                fulfiller_id=fulfiller_id,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = session.exec(stmt)
        return result.rowcount == 1

    def delete(self, session: Session, request: Request) -> None:
        session.delete(request)
        session.flush()
