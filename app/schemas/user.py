# app/schemas/user.py
import re
from datetime import datetime

from pydantic import EmailStr, ConfigDict, ValidationInfo, field_validator
from sqlmodel import SQLModel, Field

_PASSWORD_CLASSES = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


class UserRegister(SQLModel):
    """
    Registration payload.

    Validation rules:
      - name: 2-50 characters after trimming
      - email: valid EmailStr
      - password: >= 8 chars with a lowercase, an uppercase and a digit
      - confirm_password: must equal password
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=2, max_length=50)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    confirm_password: str = Field(min_length=1)

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("password")
    @classmethod
    def password_classes(cls, v: str) -> str:
        if not _PASSWORD_CLASSES.match(v):
            raise ValueError(
                "Password must contain at least one lowercase letter, "
                "one uppercase letter, and one number"
            )
        return v

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and v != password:
            raise ValueError("Passwords don't match")
        return v


class Credentials(SQLModel):
    """Email + password, for /login and /session."""

    model_config = ConfigDict(extra="forbid")

    email: EmailStr
    password: str = Field(min_length=1)


class UserRead(SQLModel):
    """Own profile; never includes the password hash."""

    id: int
    email: EmailStr
    name: str | None
    rating: float
    total_requests: int
    total_deliveries: int
    created_at: datetime


class UserSummary(SQLModel):
    """Public-safe view of a user (no contact fields)."""

    id: int
    name: str | None
    rating: float
    total_requests: int
    total_deliveries: int


class UserContact(SQLModel):
    """View of a counterpart shown to authenticated users."""

    id: int
    name: str | None
    email: str
    rating: float


class IdentityRead(SQLModel):
    id: int
    email: str
    name: str | None = None


class RegisterResult(SQLModel):
    message: str
    user: UserRead


class LoginResult(SQLModel):
    message: str
    user: IdentityRead


class SessionTokenRead(SQLModel):
    """API key to send back in the x-api-key header."""

    session_token: str
    expires_at: datetime


class SessionStatus(SQLModel):
    authenticated: bool
    user: IdentityRead | None = None
    message: str
