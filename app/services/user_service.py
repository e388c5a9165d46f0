# app/services/user_service.py
import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.core.config import Settings
from app.core.errors import AuthenticationError, ConflictError, NotFoundError
from app.core.security import hash_password, verify_password
from app.core.tokens import (
    build_api_key_claims,
    create_session_token,
    get_api_key_codec,
)
from app.models.user import User
from app.repositories.user_repo import UserRepository
from app.schemas.user import Credentials, SessionTokenRead, UserRegister

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
DUPLICATE_EMAIL = "User with this email already exists"


class UserService:
    """
    Business logic for User accounts and credentials.

    Responsibilities:
      - registration (unique email, bcrypt hash)
      - password login
      - issuing session cookies and API keys
    """

    def __init__(self, repo: UserRepository, settings: Settings):
        self.repo = repo
        self.settings = settings

    def register(self, session: Session, payload: UserRegister) -> User:
        """
        Create a user.

        The unique index on email backs the pre-check, so a concurrent
        registration that slips past it still ends up as a 409.

        Raises:
            ConflictError(409): if the email is already registered.
        """
        email = str(payload.email)
        if self.repo.get_by_email(session, email) is not None:
            raise ConflictError(DUPLICATE_EMAIL)

        user = User(
            email=email,
            name=payload.name,
            password_hash=hash_password(payload.password, self.settings.BCRYPT_ROUNDS),
        )
        try:
            user = self.repo.create(session, user)
        except IntegrityError:
            session.rollback()
            logger.info("Concurrent registration for %s rejected", email)
            raise ConflictError(DUPLICATE_EMAIL)
        logger.info("Registered user %s", user.id)
        return user

    def authenticate(self, session: Session, credentials: Credentials) -> User:
        """
        Check email + password.

        Users without a password hash (externally provisioned) cannot log
        in this way. Any error while verifying counts as a mismatch.

        Raises:
            AuthenticationError(401): on unknown email or wrong password.
        """
        user = self.repo.get_by_email(session, str(credentials.email))
        if user is None or not user.password_hash:
            raise AuthenticationError(INVALID_CREDENTIALS)

        try:
            valid = verify_password(credentials.password, user.password_hash)
        except Exception:
            logger.exception("Password verification failed for user %s", user.id)
            valid = False

        if not valid:
            raise AuthenticationError(INVALID_CREDENTIALS)
        return user

    def session_cookie_for(self, user: User) -> str:
        return create_session_token(user.id, user.email, self.settings)

    def issue_api_key(self, user: User) -> SessionTokenRead:
        """
        Build an x-api-key token for the user, valid API_KEY_TTL_SECONDS.
        """
        claims = build_api_key_claims(
            user.id,
            user.email,
            user.name,
            self.settings.API_KEY_TTL_SECONDS,
        )
        token = get_api_key_codec(self.settings).encode(claims)
        return SessionTokenRead(
            session_token=token,
            expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
        )

    def get_profile(self, session: Session, user_id: int) -> User:
        """
        Raises:
            NotFoundError(404): if the user row is gone.
        """
        user = self.repo.get_by_id(session, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user
