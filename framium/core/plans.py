"""
Plan catalog.

Maps subscription tiers to their monthly token quota and permitted models.
Pure lookups: no I/O and no side effects.
"""

from dataclasses import dataclass
from typing import Dict, Mapping, Optional, Union

from .catalog import DEFAULT_CATALOG, ModelCatalog, PlanTier


DEFAULT_QUOTAS: Dict[PlanTier, int] = {
    PlanTier.BASIC: 50_000,
    PlanTier.MAX: 250_000,
    PlanTier.BEAST: 1_000_000,
    PlanTier.ULTIMATE: 10_000_000,
}

DEFAULT_MODE = "ask"


@dataclass(frozen=True)
class Plan:
    """Resolved view of one subscription tier."""
    tier: PlanTier
    monthly_token_quota: int
    allowed_models: frozenset
    default_mode: str = DEFAULT_MODE

    @property
    def name(self) -> str:
        return self.tier.name


def resolve_tier(plan: Union[str, PlanTier, None]) -> PlanTier:
    """Resolve a stored plan name to a tier.

    Unknown or empty names resolve to the lowest tier so that a corrupt plan
    value can never grant elevated access.
    """
    if isinstance(plan, PlanTier):
        return plan
    if not plan or not isinstance(plan, str):
        return PlanTier.BASIC
    try:
        return PlanTier[plan.strip().upper()]
    except KeyError:
        return PlanTier.BASIC


class PlanCatalog:
    """Static plan lookup built from a model catalog and a quota table.

    Allowed model sets are derived from each model's minimum tier, so access
    is cumulative: a model granted at tier T is granted at every tier above T.
    """

    def __init__(
        self,
        models: ModelCatalog = DEFAULT_CATALOG,
        quotas: Optional[Mapping[PlanTier, int]] = None,
    ):
        quotas = dict(DEFAULT_QUOTAS if quotas is None else quotas)
        missing = [tier.name for tier in PlanTier if tier not in quotas]
        if missing:
            raise ValueError(f"Missing quota for plan tiers: {missing}")
        for tier, quota in quotas.items():
            if quota < 0:
                raise ValueError(f"Quota for {tier.name} cannot be negative")

        self.models = models
        self._plans: Dict[PlanTier, Plan] = {}
        for tier in PlanTier:
            allowed = frozenset(m.id for m in models if m.min_tier <= tier)
            self._plans[tier] = Plan(
                tier=tier,
                monthly_token_quota=quotas[tier],
                allowed_models=allowed,
            )

    def plan(self, tier: Union[str, PlanTier, None]) -> Plan:
        return self._plans[resolve_tier(tier)]

    def allowed_models(self, tier: Union[str, PlanTier, None]) -> frozenset:
        return self.plan(tier).allowed_models

    def is_model_allowed(self, tier: Union[str, PlanTier, None], model_id: str) -> bool:
        return model_id in self.plan(tier).allowed_models

    def quota_tokens(self, tier: Union[str, PlanTier, None]) -> int:
        return self.plan(tier).monthly_token_quota

    def required_tier(self, model_id: str) -> Optional[PlanTier]:
        """Lowest tier that grants the model, or None if it is not offered."""
        model = self.models.get(model_id)
        return model.min_tier if model else None

    def plans(self):
        """All plans in ascending tier order."""
        return [self._plans[tier] for tier in sorted(PlanTier)]


DEFAULT_PLAN_CATALOG = PlanCatalog()
