# scripts/delete_all_requests.py
"""
Wipe every request and message and reset the user counters.

Usage:
    python -m scripts.delete_all_requests
"""
from sqlalchemy import delete, update
from sqlmodel import Session

from app.database import engine
from app.models.message import Message
from app.models.request import Request
from app.models.user import User


def delete_all_requests(session: Session) -> int:
    """Returns the number of requests removed."""
    session.exec(delete(Message))
    removed = session.exec(delete(Request)).rowcount
    session.exec(update(User).values(total_requests=0, total_deliveries=0))
    session.commit()
    return removed


def main():
    with Session(engine) as session:
        removed = delete_all_requests(session)
    print(f"Deleted {removed} requests.")


if __name__ == "__main__":
    main()
