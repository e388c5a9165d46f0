# app/schemas/request.py
from datetime import datetime

from pydantic import ConfigDict, field_validator
from sqlmodel import SQLModel, Field

from app.models.request import Category, RequestStatus
from app.schemas.message import MessageRead
from app.schemas.user import UserContact, UserSummary

MAX_CITY_FILTER_LENGTH = 100


def _normalize_optional(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    return v or None


class RequestCreate(SQLModel):
    """
    Payload for posting a new request.

    Backend derives:
      - requester_id from the authenticated identity
      - status = 'OPEN'
    """

    model_config = ConfigDict(extra="forbid")

    title: str = Field(min_length=1, max_length=100)
    description: str | None = None
    category: Category
    quantity: int = Field(gt=0)
    estimated_value: float | None = Field(default=None, gt=0)
    source_city: str = Field(min_length=1)
    source_shop: str | None = None
    source_address: str | None = None
    alternative_source: str | None = None
    delivery_city: str = Field(min_length=1)
    meetup_area: str | None = None
    due_date: datetime

    @field_validator("title", "source_city", "delivery_city")
    @classmethod
    def not_empty(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("field cannot be empty")
        return v

    @field_validator(
        "description",
        "source_shop",
        "source_address",
        "alternative_source",
        "meetup_area",
    )
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _normalize_optional(v)


class RequestUpdate(SQLModel):
    """
    Partial update.

    A payload carrying only `status` is a status override; anything else is
    a field edit (see RequestService.update_request).
    """

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    category: Category | None = None
    quantity: int | None = Field(default=None, gt=0)
    estimated_value: float | None = Field(default=None, gt=0)
    source_city: str | None = Field(default=None, min_length=1)
    source_shop: str | None = None
    source_address: str | None = None
    alternative_source: str | None = None
    delivery_city: str | None = Field(default=None, min_length=1)
    meetup_area: str | None = None
    due_date: datetime | None = None
    status: RequestStatus | None = None

    @field_validator(
        "title",
        "category",
        "quantity",
        "source_city",
        "delivery_city",
        "due_date",
        "status",
    )
    @classmethod
    def not_null(cls, v):
        # Only runs for explicitly provided values.
        if v is None:
            raise ValueError("field cannot be null")
        if isinstance(v, str):
            v = v.strip()
            if not v:
                raise ValueError("field cannot be empty")
        return v

    @field_validator(
        "description",
        "source_shop",
        "source_address",
        "alternative_source",
        "meetup_area",
    )
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _normalize_optional(v)


class RequestRead(SQLModel):
    """Full request view for authenticated users."""

    id: int
    title: str
    description: str | None
    category: Category
    quantity: int
    estimated_value: float | None
    source_city: str
    source_shop: str | None
    source_address: str | None
    alternative_source: str | None
    delivery_city: str
    meetup_area: str | None
    due_date: datetime
    status: RequestStatus
    requester_id: int
    fulfiller_id: int | None
    created_at: datetime
    updated_at: datetime
    requester: UserContact | None = None
    fulfiller: UserContact | None = None
    message_count: int = 0


class RequestDetailRead(RequestRead):
    """
    Single request view. `messages` is only filled for participants.
    """

    messages: list[MessageRead] | None = None


class PublicRequestRead(SQLModel):
    """
    Unauthenticated view. Leaves out sourcing details (shop, address,
    alternative source, meetup area), the fulfiller and all emails.
    """

    id: int
    title: str
    description: str | None
    category: Category
    quantity: int
    estimated_value: float | None
    source_city: str
    delivery_city: str
    status: RequestStatus
    due_date: datetime
    created_at: datetime
    requester: UserSummary | None = None
    message_count: int = 0


class Pagination(SQLModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class RequestListRead(SQLModel):
    requests: list[RequestRead]
    pagination: Pagination


class PublicRequestListRead(SQLModel):
    requests: list[PublicRequestRead]
    pagination: Pagination


class FulfillResult(SQLModel):
    message: str
    request: RequestRead


class ActionResult(SQLModel):
    message: str
