"""
Data models for storage layer.

Defines database entities and data structures.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class RequestKind(Enum):
    """What kind of work a usage record paid for."""
    CHAT = "chat"
    AGENT = "agent"
    TASK = "task"


@dataclass(frozen=True)
class User:
    """A Framium account.

    plan is changed only by billing events or an explicit upgrade.
    Users are never deleted.
    """
    id: str
    email: str
    name: str
    plan: str
    created_at: datetime
    stripe_customer_id: Optional[str] = None


@dataclass(frozen=True)
class UsageRecord:
    """Immutable record of one completed provider call.

    Append-only facts that form the billing ledger.
    Once written, these records must never be modified.
    """
    user_id: str
    model: str
    tokens_used: int
    cost_usd: Decimal
    request_kind: RequestKind
    created_at: datetime
    id: Optional[int] = None

    def __post_init__(self):
        """Validate the record cannot carry negative amounts."""
        if self.tokens_used < 0:
            raise ValueError("tokens_used cannot be negative")
        if self.cost_usd < 0:
            raise ValueError("cost_usd cannot be negative")


@dataclass(frozen=True)
class MonthlyUsage:
    """Aggregate usage for one user in the current calendar month."""
    total_tokens: int
    total_cost: Decimal
