# app/repositories/user_repo.py
from sqlalchemy import update
from sqlmodel import Session, select, func

from app.models.user import User


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Basic CRUD -----

    def get_by_id(self, session: Session, user_id: int) -> User | None:
        """Return a User by primary key, or None if not found."""
        return session.get(User, user_id)

    def get_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by unique email, or None if not found."""
        stmt = select(User).where(User.email == email)
        return session.exec(stmt).first()

    def get_many(self, session: Session, user_ids: set[int]) -> dict[int, User]:
        """Return {id: User} for the given ids (missing ids are skipped)."""
        if not user_ids:
            return {}
        stmt = select(User).where(User.id.in_(user_ids))
        return {user.id: user for user in session.exec(stmt).all()}

    def count(self, session: Session) -> int:
        return session.exec(select(func.count()).select_from(User)).one()

    def create(self, session: Session, user: User) -> User:
        """Insert a new User and return the persisted row."""
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    # ----- Counters -----

    def adjust_counters(
        self,
        session: Session,
        user_id: int,
        requests: int = 0,
        deliveries: int = 0,
    ) -> None:
        """
        Atomically add deltas to the materialized counters.

        NOTE:
          - No commit; runs inside the caller's transaction so the counter
            moves together with the lifecycle transition.
        """
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(
                total_requests=User.total_requests + requests,
                total_deliveries=User.total_deliveries + deliveries,
            )
        )
        session.exec(stmt)
