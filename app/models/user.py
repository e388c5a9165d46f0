# app/models/user.py
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


class User(SQLModel, table=True):
    """
    Persistent marketplace user.

    Credentials:
      - password_hash is a bcrypt hash; NULL for externally provisioned
        identities, which therefore cannot log in with a password.

    Counters:
      - total_requests / total_deliveries are materialized counters,
        updated only by RequestService in the same transaction as the
        lifecycle transition that owns them.
    """

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)

    email: str = Field(
        unique=True,
        index=True,
        max_length=255,
        description="Login email (unique)",
    )

    name: str | None = Field(
        default=None,
        max_length=50,
        description="Display name",
    )

    password_hash: str | None = Field(
        default=None,
        description="bcrypt hash; absent for externally provisioned users",
    )

    rating: float = Field(default=0.0, ge=0)

    total_requests: int = Field(default=0)

    total_deliveries: int = Field(default=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Creation timestamp (UTC)",
    )
