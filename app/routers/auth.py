# app/routers/auth.py
from fastapi import APIRouter, Depends, Response, status
from sqlmodel import Session

from app.core.auth import AuthenticatedIdentity, get_optional_identity, require_auth
from app.core.config import get_settings
from app.database import get_session
from app.repositories.user_repo import UserRepository
from app.schemas.request import ActionResult
from app.schemas.user import (
    Credentials,
    IdentityRead,
    LoginResult,
    RegisterResult,
    SessionStatus,
    SessionTokenRead,
    UserRead,
    UserRegister,
)
from app.services.user_service import UserService

router = APIRouter(tags=["Auth"])

settings = get_settings()

repo = UserRepository()
service = UserService(repo, settings)


@router.post(
    "/register",
    response_model=RegisterResult,
    status_code=status.HTTP_201_CREATED,
)
def register(
    payload: UserRegister,
    session: Session = Depends(get_session),
):
    """
    Create an account.

    Errors:
      - 400 with field-level details on validation failure
      - 409 if the email is taken
    """
    user = service.register(session, payload)
    return {"message": "User created successfully", "user": user}


# -------- x-api-key sessions --------


@router.post("/session", response_model=SessionTokenRead)
def create_api_session(
    credentials: Credentials,
    session: Session = Depends(get_session),
):
    """
    Exchange email + password for a token to send as `x-api-key`.
    """
    user = service.authenticate(session, credentials)
    return service.issue_api_key(user)


@router.get("/session", response_model=SessionStatus)
def read_session(
    identity: AuthenticatedIdentity | None = Depends(get_optional_identity),
):
    """
    Report whether the caller is authenticated (cookie or API key).
    """
    if identity is None:
        return {"authenticated": False, "user": None, "message": "Not authenticated"}
    return {
        "authenticated": True,
        "user": IdentityRead(id=identity.id, email=identity.email, name=identity.name),
        "message": "Authenticated",
    }


@router.delete("/session", response_model=ActionResult)
def delete_api_session():
    """
    Best-effort sign out. There is no revocation list; keys simply expire.
    """
    return {"message": "Session ended"}


# -------- Cookie sessions --------


@router.post("/login", response_model=LoginResult)
def login(
    credentials: Credentials,
    response: Response,
    session: Session = Depends(get_session),
):
    """
    Log in with email + password and set the signed session cookie.
    """
    user = service.authenticate(session, credentials)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=service.session_cookie_for(user),
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
        max_age=settings.SESSION_MAX_AGE_SECONDS,
    )
    return {
        "message": "Login successful",
        "user": IdentityRead(id=user.id, email=user.email, name=user.name),
    }


@router.post("/logout", response_model=ActionResult)
def logout(response: Response):
    """Clear the session cookie."""
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"message": "Logged out"}


@router.get("/me", response_model=UserRead)
def read_me(
    session: Session = Depends(get_session),
    current_user: AuthenticatedIdentity = Depends(require_auth),
):
    """Return the authenticated user's profile."""
    return service.get_profile(session, current_user.id)
