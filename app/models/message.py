# app/models/message.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class Message(SQLModel, table=True):
    """
    A message in a request's thread.

    Immutable once created. sender_id is always the requester or the
    fulfiller of the request at the time of sending.
    """

    __tablename__ = "messages"

    id: int | None = Field(default=None, primary_key=True)

    content: str = Field(min_length=1, max_length=1000)

    request_id: int = Field(foreign_key="requests.id", index=True)
    sender_id: int = Field(foreign_key="users.id", index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
