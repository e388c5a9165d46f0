# scripts/create_sample_requests.py
"""
Seed sample requests owned by the first test user (development only).

Usage:
    python -m scripts.create_sample_requests [count]

Run scripts.create_test_users first.
"""
import random
import sys
from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from app.core.auth import AuthenticatedIdentity
from app.core.config import get_settings
from app.core.errors import AppError
from app.database import engine
from app.models.request import CATEGORIES
from app.repositories.message_repo import MessageRepository
from app.repositories.request_repo import RequestRepository
from app.repositories.user_repo import UserRepository
from app.schemas.request import RequestCreate
from app.services.request_service import RequestService

DEFAULT_COUNT = 50
OWNER_EMAIL = "testuser1@example.com"

ITEMS = {
    "Food": ["Homemade Biryani", "Fresh Mangoes", "Spices Pack", "Pickles", "Tea Leaves"],
    "Medicine": ["Ayurvedic Medicines", "Vitamins", "Cold Medicine", "Eye Drops", "First Aid Kit"],
    "Clothing": ["Traditional Saree", "Kurta Set", "Sherwani", "Lehenga", "Dupatta"],
    "Electronics": ["Mobile Phone", "Headphones", "Power Bank", "Memory Card", "Smart Watch"],
    "Books": ["Academic Books", "Novels", "Cookbooks", "Children Books", "Dictionaries"],
    "Other": ["Handicrafts", "Toys", "Stationery", "Home Decor", "Kitchen Utensils"],
}

SOURCE_CITIES = ["Mumbai", "Delhi", "Bangalore", "Hyderabad", "Chennai", "Kolkata", "Pune", "Jaipur"]
DELIVERY_CITIES = ["New York", "London", "Toronto", "Sydney", "Dubai", "Singapore", "Paris", "Tokyo"]
MEETUP_AREAS = ["Central Station", "Airport Terminal", "Shopping Mall", "University Campus", "Library"]


def generate_sample_request(rng: random.Random) -> RequestCreate:
    category = rng.choice(CATEGORIES)
    item = rng.choice(ITEMS[category])
    source_city = rng.choice(SOURCE_CITIES)
    delivery_city = rng.choice(DELIVERY_CITIES)

    if category == "Electronics":
        estimated_value = rng.randint(5000, 50000)
    else:
        estimated_value = rng.randint(100, 5000)

    return RequestCreate(
        title=f"Need {item} from {source_city}",
        description=(
            f"Looking for {item} from {source_city}, "
            f"to be delivered to {delivery_city}."
        ),
        category=category,
        quantity=rng.randint(1, 10),
        estimated_value=estimated_value,
        source_city=source_city,
        source_shop=f"Shop in {source_city}",
        source_address=f"{rng.randint(1, 999)} Main Street, {source_city}",
        alternative_source=(
            f"Alternative shop in {source_city}" if rng.random() > 0.7 else None
        ),
        delivery_city=delivery_city,
        meetup_area=rng.choice(MEETUP_AREAS) if rng.random() > 0.5 else None,
        due_date=datetime.now(timezone.utc) + timedelta(days=rng.uniform(1, 30)),
    )


def create_sample_requests(
    session: Session,
    count: int = DEFAULT_COUNT,
    owner_email: str = OWNER_EMAIL,
    rng: random.Random | None = None,
) -> tuple[int, list[str]]:
    """
    Create `count` requests through RequestService so the owner's
    total_requests counter moves with them.

    Returns:
        (number created, error messages)

    Raises:
        LookupError: if the owner does not exist.
    """
    rng = rng or random.Random()
    users = UserRepository()
    owner = users.get_by_email(session, owner_email)
    if owner is None:
        raise LookupError(f"User {owner_email} not found; run scripts.create_test_users first")

    service = RequestService(RequestRepository(), users, MessageRepository())
    identity = AuthenticatedIdentity.from_user(owner)

    created = 0
    errors: list[str] = []
    for i in range(count):
        payload = generate_sample_request(rng)
        try:
            service.create_request(session, identity, payload)
            created += 1
        except AppError as exc:
            session.rollback()
            errors.append(f"Request {i + 1}: {exc.detail}")
    return created, errors


def main(argv: list[str]) -> int:
    if get_settings().ENVIRONMENT == "production":
        print("Refusing to seed sample data in production.")
        return 1

    try:
        count = int(argv[0]) if argv else DEFAULT_COUNT
    except ValueError:
        print(__doc__)
        return 2

    with Session(engine) as session:
        try:
            created, errors = create_sample_requests(session, count)
        except LookupError as exc:
            print(exc)
            return 1

    print(f"Created {created} sample requests.")
    for error in errors:
        print(f"  - {error}")
    return 0 if not errors else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
