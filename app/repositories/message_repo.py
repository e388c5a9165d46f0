# app/repositories/message_repo.py
from sqlalchemy import delete
from sqlmodel import Session, select

from app.models.message import Message


class MessageRepository:
    """
    Data access layer for request messages.
    """

    def list_for_request(self, session: Session, request_id: int) -> list[Message]:
        """Oldest first."""
        stmt = (
            select(Message)
            .where(Message.request_id == request_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return session.exec(stmt).all()

    def create(self, session: Session, message: Message) -> Message:
        session.add(message)
        session.commit()
        session.refresh(message)
        return message

    def delete_for_request(self, session: Session, request_id: int) -> int:
        """
        Delete every message of a request. No commit; used inside the hard
        delete transaction.
        """
        stmt = delete(Message).where(Message.request_id == request_id)
        return session.exec(stmt).rowcount
