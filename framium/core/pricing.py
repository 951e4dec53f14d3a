"""
Pricing calculations and rate management.

Handles cost computations for the models in the catalog.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Mapping, Optional

from .catalog import DEFAULT_CATALOG, ModelCatalog


DEFAULT_RATE_PER_1K = Decimal("0.01")


@dataclass(frozen=True)
class RateTable:
    """Fixed per-model rate table (USD per 1K tokens)."""
    rates: Dict[str, Decimal]
    default_rate: Decimal = field(default=DEFAULT_RATE_PER_1K)

    def __post_init__(self):
        """Validate no rate is negative."""
        if self.default_rate < 0:
            raise ValueError("default_rate cannot be negative")
        for model, rate in self.rates.items():
            if rate < 0:
                raise ValueError(f"Rate for {model} cannot be negative")

    def rate_for(self, model: str) -> Decimal:
        """Get the rate for a model.

        Unrecognized models are billed at the default rate rather than
        rejected, so accounting never fails on a catalog gap.
        """
        return self.rates.get(model, self.default_rate)

    @classmethod
    def from_catalog(
        cls,
        catalog: ModelCatalog = DEFAULT_CATALOG,
        overrides: Optional[Mapping[str, Decimal]] = None,
    ) -> "RateTable":
        rates = {model.id: model.cost_per_1k for model in catalog}
        if overrides:
            rates.update({k: Decimal(str(v)) for k, v in overrides.items()})
        return cls(rates=rates)


DEFAULT_RATE_TABLE = RateTable.from_catalog()


def calculate_cost(model: str, tokens: int, table: RateTable = DEFAULT_RATE_TABLE) -> Decimal:
    """Calculate the USD cost of a number of tokens on a model.

    Args:
        model: Namespaced model identifier
        tokens: Tokens consumed by the request
        table: Rate table to price against

    Returns:
        (tokens / 1000) * rate, exact in Decimal arithmetic

    Raises:
        ValueError: If tokens is negative
    """
    if tokens < 0:
        raise ValueError("tokens cannot be negative")

    # Cost: (tokens / 1000) * cost_per_1k
    return (Decimal(tokens) / Decimal("1000")) * table.rate_for(model)
