# app/core/tokens.py
"""
Token encoding for the two identity proofs.

Session cookie:
  JWT (HS256, SECRET_KEY) with claims {sub, email, kind="session", iat, exp}.

API key (x-api-key header):
  Claims {id, email, name, iat, exp} (epoch seconds), encoded by one of two
  codecs selected with API_KEY_FORMAT:
    - "signed"   : JWT with kind="api_key". Default.
    - "unsigned" : legacy base64-encoded JSON. Anyone can mint one for any
                   email, so Settings only accepts it in development.
"""
import base64
import binascii
import json
import logging
import time
from typing import Any, Protocol

from jose import JWTError, jwt

from app.core.config import Settings

logger = logging.getLogger(__name__)

SESSION_KIND = "session"
API_KEY_KIND = "api_key"


def _now() -> int:
    return int(time.time())


# ----- Session cookie -----


def create_session_token(user_id: int, email: str, settings: Settings) -> str:
    """Sign a session cookie value for the given user."""
    issued_at = _now()
    claims = {
        "sub": str(user_id),
        "email": email,
        "kind": SESSION_KIND,
        "iat": issued_at,
        "exp": issued_at + settings.SESSION_MAX_AGE_SECONDS,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.JWT_ALG)


def decode_session_token(token: str, settings: Settings) -> dict[str, Any] | None:
    """
    Verify signature and expiry of a session cookie.

    Returns:
        The claims, or None if the token is invalid, expired or not a
        session token.
    """
    try:
        claims = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALG])
    except JWTError as exc:
        logger.debug("Rejected session cookie: %s", exc)
        return None
    if claims.get("kind") != SESSION_KIND:
        return None
    return claims


# ----- API keys -----


class TokenCodec(Protocol):
    def encode(self, claims: dict[str, Any]) -> str: ...

    def decode(self, token: str) -> dict[str, Any] | None: ...


class SignedTokenCodec:
    """API keys as signed JWTs; tampered or forged keys fail to decode."""

    def __init__(self, secret_key: str, algorithm: str = "HS256"):
        self.secret_key = secret_key
        self.algorithm = algorithm

    def encode(self, claims: dict[str, Any]) -> str:
        return jwt.encode(
            {**claims, "kind": API_KEY_KIND},
            self.secret_key,
            algorithm=self.algorithm,
        )

    def decode(self, token: str) -> dict[str, Any] | None:
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                # Expiry is checked by the resolver so both codecs behave alike.
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.debug("Rejected signed API key: %s", exc)
            return None
        if claims.get("kind") != API_KEY_KIND:
            return None
        return claims


class UnsignedTokenCodec:
    """Legacy base64 JSON API keys. Development only."""

    def encode(self, claims: dict[str, Any]) -> str:
        return base64.b64encode(json.dumps(claims).encode("utf-8")).decode("ascii")

    def decode(self, token: str) -> dict[str, Any] | None:
        try:
            raw = base64.b64decode(token, validate=True)
            claims = json.loads(raw.decode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            logger.debug("Rejected unsigned API key: %s", exc)
            return None
        if not isinstance(claims, dict):
            return None
        return claims


def get_api_key_codec(settings: Settings) -> TokenCodec:
    if settings.API_KEY_FORMAT == "unsigned":
        return UnsignedTokenCodec()
    return SignedTokenCodec(settings.SECRET_KEY, settings.JWT_ALG)


def build_api_key_claims(
    user_id: int,
    email: str,
    name: str | None,
    ttl_seconds: int,
) -> dict[str, Any]:
    issued_at = _now()
    return {
        "id": user_id,
        "email": email,
        "name": name,
        "iat": issued_at,
        "exp": issued_at + ttl_seconds,
    }


def is_expired(claims: dict[str, Any]) -> bool:
    """
    True when exp is missing, malformed or in the past.
    """
    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return True
    return _now() > exp
