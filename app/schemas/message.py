# app/schemas/message.py
from datetime import datetime

from pydantic import ConfigDict
from sqlmodel import SQLModel, Field


class MessageCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(min_length=1, max_length=1000)


class MessageSender(SQLModel):
    id: int
    name: str | None
    email: str


class MessageRead(SQLModel):
    id: int
    content: str
    request_id: int
    sender_id: int
    created_at: datetime
    sender: MessageSender | None = None


class MessageListRead(SQLModel):
    messages: list[MessageRead]
