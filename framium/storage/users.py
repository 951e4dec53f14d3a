"""
User store.

Identity and plan lookups used by the chat orchestrator and the operator CLI.
"""

import uuid
from datetime import datetime
from typing import Optional

from framium.core.catalog import PlanTier

from .db import DEFAULT_DB_PATH, get_connection
from .ledger import to_utc_iso, utc_now
from .models import User

DEFAULT_PLAN = PlanTier.BASIC.name


def _row_to_user(row) -> User:
    return User(
        id=row[0],
        email=row[1],
        name=row[2],
        plan=row[3],
        stripe_customer_id=row[4],
        created_at=datetime.fromisoformat(row[5]),
    )


def _validate_plan(plan: str) -> str:
    normalized = (plan or "").strip().upper()
    if normalized not in PlanTier.__members__:
        valid = [tier.name for tier in PlanTier]
        raise ValueError(f"plan must be one of: {valid}")
    return normalized


class UserRepository:
    """Repository for Framium accounts."""

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        self.db_path = db_path

    def create_user(self, email: str, name: str, plan: str = DEFAULT_PLAN) -> User:
        """Create a user on signup.

        Args:
            email: Unique email address
            name: Display name
            plan: Initial plan tier name

        Returns:
            The created User

        Raises:
            ValueError: If email or name is empty, or plan is unknown
            sqlite3.IntegrityError: If the email is already registered
        """
        if not email or not email.strip():
            raise ValueError("email is required and cannot be empty")
        if not name or not name.strip():
            raise ValueError("name is required and cannot be empty")
        plan = _validate_plan(plan)

        user_id = str(uuid.uuid4())
        now = to_utc_iso(utc_now())
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO users (id, email, name, plan, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """, (user_id, email.strip(), name.strip(), plan, now, now))
            conn.commit()
        finally:
            conn.close()

        return self.get_user(user_id)

    def get_user(self, user_id: str) -> Optional[User]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT id, email, name, plan, stripe_customer_id, created_at
                FROM users WHERE id = ?
            """, (user_id,)).fetchone()
        finally:
            conn.close()
        return _row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute("""
                SELECT id, email, name, plan, stripe_customer_id, created_at
                FROM users WHERE email = ?
            """, (email,)).fetchone()
        finally:
            conn.close()
        return _row_to_user(row) if row else None

    def get_plan(self, user_id: str) -> str:
        """Stored plan name for a user, BASIC when the user has none."""
        user = self.get_user(user_id)
        return user.plan if user and user.plan else DEFAULT_PLAN

    def update_plan(self, user_id: str, plan: str) -> bool:
        """Change a user's plan. Returns False if the user does not exist."""
        plan = _validate_plan(plan)
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "UPDATE users SET plan = ?, updated_at = ? WHERE id = ?",
                (plan, to_utc_iso(utc_now()), user_id),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()

    def set_stripe_customer(self, user_id: str, customer_id: str) -> bool:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "UPDATE users SET stripe_customer_id = ?, updated_at = ? WHERE id = ?",
                (customer_id, to_utc_iso(utc_now()), user_id),
            )
            conn.commit()
            return cursor.rowcount == 1
        finally:
            conn.close()
