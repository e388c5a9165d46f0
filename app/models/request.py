# app/models/request.py
from datetime import datetime, timezone
from typing import Literal, get_args

from sqlmodel import SQLModel, Field

Category = Literal["Food", "Medicine", "Clothing", "Electronics", "Books", "Other"]
RequestStatus = Literal["OPEN", "IN_PROGRESS", "COMPLETED", "CANCELLED"]

CATEGORIES: tuple[str, ...] = get_args(Category)
STATUSES: tuple[str, ...] = get_args(RequestStatus)

STATUS_OPEN = "OPEN"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"

# Statuses in which a fulfiller may be attached.
FULFILLED_STATUSES = frozenset({STATUS_IN_PROGRESS, STATUS_COMPLETED})


class Request(SQLModel, table=True):
    """
    A sourcing/delivery task posted by a user.

    Lifecycle (see RequestService):
      OPEN -> IN_PROGRESS  (fulfill, by a non-requester)
      OPEN -> CANCELLED    (cancel, by the requester)

    Invariants:
      - requester_id never changes after creation
      - fulfiller_id != requester_id
      - fulfiller_id is set only while status is IN_PROGRESS or COMPLETED
    """

    __tablename__ = "requests"

    # Autoincrement id doubles as insertion order for stable sorting.
    id: int | None = Field(default=None, primary_key=True)

    title: str = Field(max_length=100)
    description: str | None = None

    # Food | Medicine | Clothing | Electronics | Books | Other
    category: str = Field(index=True)

    quantity: int = Field(gt=0)
    estimated_value: float | None = Field(default=None, gt=0)

    source_city: str
    source_shop: str | None = None
    source_address: str | None = None
    alternative_source: str | None = None

    delivery_city: str = Field(index=True)
    meetup_area: str | None = None

    due_date: datetime

    # OPEN | IN_PROGRESS | COMPLETED | CANCELLED
    status: str = Field(
        default=STATUS_OPEN,
        index=True,
        description="Request status lifecycle",
    )

    requester_id: int = Field(foreign_key="users.id", index=True)
    fulfiller_id: int | None = Field(
        default=None,
        foreign_key="users.id",
        index=True,
    )

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        index=True,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Last modification timestamp (UTC)",
    )
