# app/core/auth.py
import logging
from dataclasses import dataclass
from typing import Protocol

from fastapi import Depends, Request
from sqlmodel import Session

from app.core.config import Settings, get_settings
from app.core.errors import AuthenticationError
from app.core.tokens import (
    TokenCodec,
    decode_session_token,
    get_api_key_codec,
    is_expired,
)
from app.database import get_session
from app.models.user import User
from app.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)

settings = get_settings()

API_KEY_HEADER = "x-api-key"


@dataclass(frozen=True)
class AuthenticatedIdentity:
    """
    Request-scoped identity produced by the resolver chain.

    Always built from the database row, never from token claims.
    """

    id: int
    email: str
    name: str | None = None

    @classmethod
    def from_user(cls, user: User) -> "AuthenticatedIdentity":
        return cls(id=user.id, email=user.email, name=user.name)


class IdentityResolver(Protocol):
    """
    One way of proving identity.

    resolve() returns an identity, or None for "no opinion" so the next
    resolver in the chain gets a turn.
    """

    def resolve(
        self, request: Request, session: Session
    ) -> AuthenticatedIdentity | None: ...


class SessionCookieResolver:
    """
    First-party session proof: a signed JWT in the session cookie.
    """

    def __init__(self, settings: Settings, users: UserRepository):
        self.settings = settings
        self.users = users

    def resolve(
        self, request: Request, session: Session
    ) -> AuthenticatedIdentity | None:
        token = request.cookies.get(self.settings.SESSION_COOKIE_NAME)
        if not token:
            logger.debug("No session cookie present")
            return None

        claims = decode_session_token(token, self.settings)
        email = claims.get("email") if claims else None
        if not email:
            logger.debug("Session cookie did not yield an email")
            return None

        user = self.users.get_by_email(session, email)
        if user is None:
            logger.info("Session cookie for unknown user %s", email)
            return None

        logger.debug("Authenticated %s via session cookie", user.email)
        return AuthenticatedIdentity.from_user(user)


class ApiKeyResolver:
    """
    Header-carried token fallback (x-api-key).

    Flow:
      1. Decode the token with the configured codec; undecodable => None.
      2. Missing or past `exp` => None.
      3. Look up the user by the decoded email; the identity is built from
         the database row, the token's id/name are ignored.
    """

    def __init__(self, codec: TokenCodec, users: UserRepository):
        self.codec = codec
        self.users = users

    def resolve(
        self, request: Request, session: Session
    ) -> AuthenticatedIdentity | None:
        token = request.headers.get(API_KEY_HEADER)
        if not token:
            logger.debug("No API key present")
            return None

        claims = self.codec.decode(token)
        if claims is None:
            logger.info("API key could not be decoded")
            return None

        if is_expired(claims):
            logger.info("API key expired or without expiry")
            return None

        email = claims.get("email")
        if not isinstance(email, str) or not email:
            return None

        user = self.users.get_by_email(session, email)
        if user is None:
            logger.info("API key for unknown user %s", email)
            return None

        logger.debug("Authenticated %s via API key", user.email)
        return AuthenticatedIdentity.from_user(user)


class IdentityResolverChain:
    """
    Ordered resolvers, first match wins.
    """

    def __init__(self, resolvers: list[IdentityResolver]):
        self.resolvers = resolvers

    def resolve(
        self, request: Request, session: Session
    ) -> AuthenticatedIdentity | None:
        for resolver in self.resolvers:
            identity = resolver.resolve(request, session)
            if identity is not None:
                return identity
        return None


def build_identity_resolver(settings: Settings) -> IdentityResolverChain:
    users = UserRepository()
    return IdentityResolverChain(
        [
            SessionCookieResolver(settings, users),
            ApiKeyResolver(get_api_key_codec(settings), users),
        ]
    )


_resolver = build_identity_resolver(settings)


def get_identity_resolver() -> IdentityResolverChain:
    """FastAPI dependency; override in tests to swap settings."""
    return _resolver


def get_optional_identity(
    request: Request,
    session: Session = Depends(get_session),
    resolver: IdentityResolverChain = Depends(get_identity_resolver),
) -> AuthenticatedIdentity | None:
    """
    Resolve the caller's identity.

    Returns:
        AuthenticatedIdentity if a session cookie or API key checks out,
        else None (guest).
    """
    return resolver.resolve(request, session)


def require_auth(
    identity: AuthenticatedIdentity | None = Depends(get_optional_identity),
) -> AuthenticatedIdentity:
    """
    Enforce authentication.

    Raises:
        AuthenticationError(401): if no resolver produced an identity.
    """
    if identity is None:
        raise AuthenticationError(
            "Please authenticate using a session cookie or a valid API key"
        )
    return identity
