# app/services/message_service.py
import logging

from sqlmodel import Session

from app.core.auth import AuthenticatedIdentity
from app.core.errors import AuthorizationError, NotFoundError, ValidationError
from app.models.message import Message
from app.models.request import Request, STATUS_CANCELLED
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.user_repo import UserRepository
from app.schemas.message import MessageCreate, MessageListRead, MessageRead

logger = logging.getLogger(__name__)


def can_access_messages(user_id: int, request: Request) -> bool:
    """Only the requester and the fulfiller may read or write the thread."""
    return user_id in (request.requester_id, request.fulfiller_id)


def build_message_reads(
    session: Session,
    messages: list[Message],
    users: UserRepository,
) -> list[MessageRead]:
    senders = users.get_many(session, {m.sender_id for m in messages})
    reads: list[MessageRead] = []
    for message in messages:
        sender = senders.get(message.sender_id)
        data = message.model_dump()
        if sender is not None:
            data["sender"] = {"id": sender.id, "name": sender.name, "email": sender.email}
        reads.append(MessageRead.model_validate(data))
    return reads


class MessageService:
    """
    Business logic for a request's message thread.

    Rules:
      - request must exist (404)
      - caller must be requester or fulfiller (403)
      - no new messages once the request is CANCELLED (400)
    """

    def __init__(
        self,
        message_repo: MessageRepository,
        request_repo: RequestRepository,
        user_repo: UserRepository,
    ):
        self.message_repo = message_repo
        self.request_repo = request_repo
        self.user_repo = user_repo

    def _get_thread_request(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
        action: str,
    ) -> Request:
        request = self.request_repo.get_by_id(session, request_id)
        if request is None:
            raise NotFoundError("Request not found")
        if not can_access_messages(identity.id, request):
            raise AuthorizationError(f"Not authorized to {action} messages for this request")
        return request

    def list_messages(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
    ) -> MessageListRead:
        self._get_thread_request(session, identity, request_id, "view")
        messages = self.message_repo.list_for_request(session, request_id)
        return MessageListRead(
            messages=build_message_reads(session, messages, self.user_repo)
        )

    def send_message(
        self,
        session: Session,
        identity: AuthenticatedIdentity,
        request_id: int,
        payload: MessageCreate,
    ) -> MessageRead:
        request = self._get_thread_request(session, identity, request_id, "send")
        if request.status == STATUS_CANCELLED:
            raise ValidationError("Cannot send messages for cancelled requests")

        message = self.message_repo.create(
            session,
            Message(
                content=payload.content,
                request_id=request_id,
                sender_id=identity.id,
            ),
        )
        logger.info("User %s posted message %s on request %s", identity.id, message.id, request_id)
        return build_message_reads(session, [message], self.user_repo)[0]
