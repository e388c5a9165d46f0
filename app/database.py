# app/database.py
from typing import Any

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings

settings = get_settings()


def _build_url(raw_url: str, sslmode: str | None) -> str:
    """
    Append sslmode=<mode> to a Postgres URL if configured and not already present.
    """
    if not sslmode or not raw_url.startswith("postgresql") or "sslmode=" in raw_url:
        return raw_url
    separator = "&" if "?" in raw_url else "?"
    return f"{raw_url}{separator}sslmode={sslmode}"


def _engine_kwargs(url: str) -> dict[str, Any]:
    """
    Pool options per backend.

    - SQLite: allow use from the FastAPI threadpool; in-memory databases
      share one connection (StaticPool) so every session sees the same data.
    - Postgres: validate connections before use, keep the pool small.
    """
    if url.startswith("sqlite"):
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs

    return {
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 5,
    }


db_url = _build_url(settings.DATABASE_URL, settings.DATABASE_SSLMODE)

engine = create_engine(
    db_url,
    echo=settings.DATABASE_ECHO,
    **_engine_kwargs(db_url),
)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
