# app/routers/health.py
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlmodel import Session

from app.core.errors import InternalError
from app.database import get_session
from app.repositories.user_repo import UserRepository

router = APIRouter(prefix="/health", tags=["Health"])

logger = logging.getLogger(__name__)

repo = UserRepository()


@router.get("")
def health():
    """Liveness check."""
    return {"status": "ok"}


@router.get("/db")
def health_db(session: Session = Depends(get_session)):
    """
    Database connectivity check: runs SELECT 1 and counts users.
    """
    try:
        session.exec(text("SELECT 1"))
        user_count = repo.count(session)
    except Exception as exc:
        logger.error("Database health check failed: %s", exc)
        raise InternalError("Database connection failed") from exc
    return {
        "status": "ok",
        "message": "Database connection successful",
        "user_count": user_count,
    }
