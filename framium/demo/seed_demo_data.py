"""
Demo seed data: one user per plan tier.
"""

from typing import List

from framium.storage.db import DEFAULT_DB_PATH, initialize_schema
from framium.storage.models import User
from framium.storage.users import UserRepository

DEMO_USERS = [
    ("test@framium.dev", "Test User", "BASIC"),
    ("demo@framium.dev", "Demo User", "MAX"),
    ("premium@framium.dev", "Premium User", "BEAST"),
    ("enterprise@framium.dev", "Enterprise User", "ULTIMATE"),
]


def seed_demo_users(db_path: str = DEFAULT_DB_PATH) -> List[User]:
    """Create one demo user per plan, reusing any that already exist."""
    repo = UserRepository(db_path)
    users = []
    for email, name, plan in DEMO_USERS:
        user = repo.get_user_by_email(email) or repo.create_user(email, name, plan)
        users.append(user)
    return users


if __name__ == "__main__":
    initialize_schema()
    for user in seed_demo_users():
        print(f"{user.plan:<9} {user.id} {user.email}")
