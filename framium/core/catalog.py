"""
Model catalog.

Static descriptors for every model Framium can dispatch to. Changing an entry
is a deployment event, not a data mutation.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, Iterator, Optional


DEFAULT_MAX_OUTPUT_TOKENS = 4096


class PlanTier(Enum):
    """Subscription tiers in ascending order of access."""
    BASIC = 1
    MAX = 2
    BEAST = 3
    ULTIMATE = 4

    @property
    def rank(self) -> int:
        return self.value

    def __lt__(self, other: "PlanTier") -> bool:
        if not isinstance(other, PlanTier):
            return NotImplemented
        return self.value < other.value

    def __le__(self, other: "PlanTier") -> bool:
        if not isinstance(other, PlanTier):
            return NotImplemented
        return self.value <= other.value


@dataclass(frozen=True)
class ModelDescriptor:
    """Immutable description of one dispatchable model."""
    id: str  # provider/model-name
    provider: str
    upstream_name: str  # Identifier sent to the provider API
    max_output_tokens: int
    cost_per_1k: Decimal  # USD per 1K tokens
    min_tier: PlanTier  # Lowest tier granting access

    def __post_init__(self):
        """Validate the descriptor is internally consistent."""
        if "/" not in self.id:
            raise ValueError(f"Model id must be namespaced as provider/name: {self.id}")
        prefix = self.id.split("/", 1)[0]
        if prefix != self.provider:
            raise ValueError(
                f"Model id prefix '{prefix}' does not match provider '{self.provider}'"
            )
        if self.max_output_tokens <= 0:
            raise ValueError(f"max_output_tokens must be > 0 for {self.id}")
        if self.cost_per_1k < 0:
            raise ValueError(f"cost_per_1k cannot be negative for {self.id}")


def provider_prefix(model_id: str) -> Optional[str]:
    """Return the provider namespace of a model id, or None if it has none."""
    if not model_id or "/" not in model_id:
        return None
    prefix = model_id.split("/", 1)[0]
    return prefix or None


class ModelCatalog:
    """Lookup table of model descriptors keyed by namespaced id."""

    def __init__(self, models: Iterable[ModelDescriptor]):
        self._models: Dict[str, ModelDescriptor] = {}
        for model in models:
            if model.id in self._models:
                raise ValueError(f"Duplicate model id in catalog: {model.id}")
            self._models[model.id] = model

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)

    def get(self, model_id: str) -> Optional[ModelDescriptor]:
        return self._models.get(model_id)

    def max_output_tokens(self, model_id: str) -> int:
        model = self._models.get(model_id)
        return model.max_output_tokens if model else DEFAULT_MAX_OUTPUT_TOKENS

    def providers(self) -> frozenset:
        return frozenset(model.provider for model in self._models.values())


def _model(model_id: str, upstream: str, max_tokens: int, rate: str, tier: PlanTier) -> ModelDescriptor:
    provider = model_id.split("/", 1)[0]
    return ModelDescriptor(
        id=model_id,
        provider=provider,
        upstream_name=upstream,
        max_output_tokens=max_tokens,
        cost_per_1k=Decimal(rate),
        min_tier=tier,
    )


DEFAULT_MODELS = (
    # OpenAI
    _model("openai/gpt-3.5-turbo", "gpt-3.5-turbo", 4096, "0.001", PlanTier.BASIC),
    _model("openai/gpt-4.1", "gpt-4.1", 8192, "0.003", PlanTier.BASIC),
    _model("openai/gpt-4o", "gpt-4o", 4096, "0.025", PlanTier.MAX),
    _model("openai/gpt-4-turbo", "gpt-4-turbo", 4096, "0.01", PlanTier.MAX),
    _model("openai/gpt-4", "gpt-4", 4096, "0.03", PlanTier.BEAST),
    # Anthropic
    _model("anthropic/claude-3-haiku", "claude-3-haiku-20240307", 4096, "0.0025", PlanTier.BASIC),
    _model("anthropic/claude-3-7-sonnet", "claude-3-7-sonnet-latest", 8192, "0.0025", PlanTier.BASIC),
    _model("anthropic/claude-3-5-sonnet", "claude-3-5-sonnet-latest", 4096, "0.015", PlanTier.MAX),
    _model("anthropic/claude-3-sonnet", "claude-3-sonnet-20240229", 4096, "0.015", PlanTier.MAX),
    _model("anthropic/claude-sonnet-4", "claude-sonnet-4-20250514", 8192, "0.03", PlanTier.MAX),
    _model("anthropic/claude-3-opus", "claude-3-opus-20240229", 4096, "0.075", PlanTier.BEAST),
    _model("anthropic/claude-opus-4-1", "claude-opus-4-1-20250805", 8192, "0.06", PlanTier.BEAST),
    # Google
    _model("google/gemini-pro", "gemini-pro", 2048, "0.005", PlanTier.MAX),
    _model("google/gemini-1.5-pro", "gemini-1.5-pro", 8192, "0.0025", PlanTier.MAX),
    _model("google/gemini-2.5-pro", "gemini-2.5-pro", 8192, "0.05", PlanTier.BEAST),
)

DEFAULT_CATALOG = ModelCatalog(DEFAULT_MODELS)
