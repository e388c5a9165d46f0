# scripts/generate_api_key.py
"""
Print an x-api-key token for an existing user.

Usage:
    python -m scripts.generate_api_key <email> <password>
"""
import sys

from sqlmodel import Session

from app.core.config import get_settings
from app.core.errors import AuthenticationError
from app.database import engine
from app.repositories.user_repo import UserRepository
from app.schemas.user import Credentials
from app.services.user_service import UserService


def main(argv: list[str]) -> int:
    if len(argv) != 2:
        print(__doc__)
        return 2

    email, password = argv
    service = UserService(UserRepository(), get_settings())

    with Session(engine) as session:
        try:
            user = service.authenticate(session, Credentials(email=email, password=password))
        except AuthenticationError as exc:
            print(f"Authentication failed: {exc.detail}")
            return 1
        token = service.issue_api_key(user)

    print("API key (send as the x-api-key header):")
    print("=" * 50)
    print(token.session_token)
    print("=" * 50)
    print(f"Expires at {token.expires_at.isoformat()}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
