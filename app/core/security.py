# app/core/security.py
import secrets

import bcrypt

from app.core.config import get_settings

settings = get_settings()

RANDOM_CHARSET = (
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*"
)


def hash_password(password: str, rounds: int | None = None) -> str:
    """
    Hash a plaintext password with bcrypt.

    Args:
        password: plaintext password.
        rounds: bcrypt work factor; defaults to BCRYPT_ROUNDS (12).

    Returns:
        The bcrypt hash as a string ("$2b$...").
    """
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a plaintext password against a bcrypt hash.

    Uses bcrypt.checkpw, never plain string equality.

    Raises:
        ValueError: if password_hash is not a bcrypt hash. Callers must
        treat that as invalid credentials.
    """
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def generate_random(length: int = 12) -> str:
    """
    Random string drawn uniformly from letters, digits and symbols.

    Used by seed scripts for throwaway passwords.
    """
    return "".join(secrets.choice(RANDOM_CHARSET) for _ in range(length))
