# scripts/create_test_users.py
"""
Seed two test users with random passwords.

Usage:
    python -m scripts.create_test_users
"""
from sqlmodel import Session

from app.core.security import generate_random, hash_password
from app.database import create_db_and_tables, engine
from app.models.user import User
from app.repositories.user_repo import UserRepository

TEST_USERS = [
    ("testuser1@example.com", "Test User 1", 4.5),
    ("testuser2@example.com", "Test User 2", 4.8),
]


def create_test_users(session: Session) -> list[tuple[str, str]]:
    """
    Create or reset the test users.

    Returns:
        [(email, plaintext password), ...]
    """
    repo = UserRepository()
    created: list[tuple[str, str]] = []

    for email, name, rating in TEST_USERS:
        password = generate_random(16)
        user = repo.get_by_email(session, email) or User(email=email)
        user.name = name
        user.rating = rating
        user.password_hash = hash_password(password)
        user.total_requests = 0
        user.total_deliveries = 0
        session.add(user)
        created.append((email, password))

    session.commit()
    return created


def main():
    create_db_and_tables()
    with Session(engine) as session:
        credentials = create_test_users(session)

    print("Test users created:")
    for email, password in credentials:
        print(f"  {email} / {password}")
    print("Get an API key with: python -m scripts.generate_api_key <email> <password>")


if __name__ == "__main__":
    main()
