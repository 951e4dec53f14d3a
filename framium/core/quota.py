"""
Monthly quota admission.

Decides whether a pending request fits in what remains of the user's
monthly token quota.

The check is optimistic: it reads the ledger once and takes no lock, so two
concurrent requests from the same user can both be admitted and together
overrun the quota by at most one request's tokens.
"""

from dataclasses import dataclass
from typing import Union

from .catalog import PlanTier
from .errors import QuotaExceededError
from .plans import PlanCatalog


@dataclass(frozen=True)
class QuotaDecision:
    """Outcome of one admission check."""
    allowed: bool
    used: int
    requested: int
    quota: int

    @property
    def remaining(self) -> int:
        return max(self.quota - self.used, 0)


class QuotaGuard:
    """Admission check of current-month usage against the plan quota."""

    def __init__(self, ledger, plans: PlanCatalog):
        """
        Args:
            ledger: Anything with monthly_usage(user_id) -> MonthlyUsage
            plans: Plan catalog supplying quotas
        """
        self.ledger = ledger
        self.plans = plans

    def check(self, user_id: str, plan: Union[str, PlanTier], estimated_tokens: int) -> QuotaDecision:
        """Evaluate admission for a request of estimated size.

        Args:
            user_id: Requesting user
            plan: User's current plan
            estimated_tokens: Admission estimate for the pending request

        Returns:
            QuotaDecision with allowed = used + estimated <= quota
        """
        if estimated_tokens < 0:
            raise ValueError("estimated_tokens cannot be negative")

        used = self.ledger.monthly_usage(user_id).total_tokens
        quota = self.plans.quota_tokens(plan)
        return QuotaDecision(
            allowed=used + estimated_tokens <= quota,
            used=used,
            requested=estimated_tokens,
            quota=quota,
        )

    def can_proceed(self, user_id: str, plan: Union[str, PlanTier], estimated_tokens: int) -> bool:
        return self.check(user_id, plan, estimated_tokens).allowed

    def enforce(self, user_id: str, plan: Union[str, PlanTier], estimated_tokens: int) -> QuotaDecision:
        """Like check(), but raise when the request is not admissible.

        Raises:
            QuotaExceededError: If admitting the request would exceed the quota
        """
        decision = self.check(user_id, plan, estimated_tokens)
        if not decision.allowed:
            raise QuotaExceededError(decision.used, decision.quota, decision.requested)
        return decision
