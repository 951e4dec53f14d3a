"""
Configuration management and loading.

Handles application settings from YAML and provider keys from the environment.
"""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Mapping, Optional

import yaml

from framium.core.catalog import DEFAULT_CATALOG, ModelCatalog, PlanTier
from framium.core.plans import DEFAULT_QUOTAS, PlanCatalog
from framium.core.pricing import RateTable
from framium.storage.db import DEFAULT_DB_PATH

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
DEFAULT_PROVIDER_TIMEOUT = 60.0


@dataclass(frozen=True)
class ApiKeys:
    """Provider API keys. Read from the environment only."""
    openai: Optional[str] = None
    anthropic: Optional[str] = None
    gemini: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ApiKeys":
        env = os.environ if environ is None else environ
        return cls(
            openai=env.get("OPENAI_API_KEY") or None,
            anthropic=env.get("ANTHROPIC_API_KEY") or None,
            gemini=env.get("GEMINI_API_KEY") or None,
        )


@dataclass(frozen=True)
class FramiumConfig:
    """Complete application configuration, built once at process start."""
    database: str = DEFAULT_DB_PATH
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = True
    provider_timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT
    plan_quotas: Dict[PlanTier, int] = field(default_factory=lambda: dict(DEFAULT_QUOTAS))
    rate_overrides: Dict[str, Decimal] = field(default_factory=dict)
    api_keys: ApiKeys = field(default_factory=ApiKeys)

    def __post_init__(self):
        """Validate configuration values."""
        if not self.database:
            raise ValueError("database must not be empty")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {sorted(LOG_LEVELS)}")
        if self.provider_timeout_seconds <= 0:
            raise ValueError("providers.timeout_seconds must be > 0")
        for tier, quota in self.plan_quotas.items():
            if quota < 0:
                raise ValueError(f"Quota for {tier.name} must be >= 0")
        for model, rate in self.rate_overrides.items():
            if rate < 0:
                raise ValueError(f"Rate for {model} must be >= 0")

    @classmethod
    def default(cls, environ: Optional[Mapping[str, str]] = None) -> "FramiumConfig":
        return cls(api_keys=ApiKeys.from_env(environ))

    def build_catalog(self) -> ModelCatalog:
        return DEFAULT_CATALOG

    def build_plan_catalog(self, models: Optional[ModelCatalog] = None) -> PlanCatalog:
        return PlanCatalog(models or self.build_catalog(), self.plan_quotas)

    def build_rate_table(self, models: Optional[ModelCatalog] = None) -> RateTable:
        return RateTable.from_catalog(models or self.build_catalog(), self.rate_overrides)


def load_config(path: str, environ: Optional[Mapping[str, str]] = None) -> FramiumConfig:
    """Load and validate configuration from a YAML file.

    Strict validation: unknown keys are errors so that a typo cannot
    silently fall back to a default quota or rate.

    Args:
        path: Path to YAML configuration file
        environ: Environment to read API keys from (defaults to os.environ)

    Returns:
        Validated FramiumConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    allowed_top_keys = {'database', 'debug', 'log_level', 'json_logs', 'providers', 'plans', 'rates'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    kwargs = {"api_keys": ApiKeys.from_env(environ)}

    if 'database' in raw_config:
        database = raw_config['database']
        if not isinstance(database, str) or not database.strip():
            raise ValueError("'database' must be a non-empty string")
        kwargs['database'] = database

    for flag in ('debug', 'json_logs'):
        if flag in raw_config:
            if not isinstance(raw_config[flag], bool):
                raise ValueError(f"'{flag}' must be true or false")
            kwargs[flag] = raw_config[flag]

    if 'log_level' in raw_config:
        level = raw_config['log_level']
        if not isinstance(level, str):
            raise ValueError("'log_level' must be a string")
        kwargs['log_level'] = level.upper()

    if 'providers' in raw_config:
        kwargs['provider_timeout_seconds'] = _parse_providers(raw_config['providers'])

    if 'plans' in raw_config:
        kwargs['plan_quotas'] = _parse_plans(raw_config['plans'])

    if 'rates' in raw_config:
        kwargs['rate_overrides'] = _parse_rates(raw_config['rates'])

    return FramiumConfig(**kwargs)


def _parse_providers(data) -> float:
    if not isinstance(data, dict):
        raise ValueError("'providers' must be a dictionary")

    unknown_keys = set(data.keys()) - {'timeout_seconds'}
    if unknown_keys:
        raise ValueError(f"Unknown keys in providers: {unknown_keys}")

    timeout = data.get('timeout_seconds', DEFAULT_PROVIDER_TIMEOUT)
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ValueError("'providers.timeout_seconds' must be > 0")
    return float(timeout)


def _parse_plans(data) -> Dict[PlanTier, int]:
    """Parse quota overrides keyed by tier name.

    Tiers not mentioned keep their default quota.
    """
    if not isinstance(data, dict):
        raise ValueError("'plans' must be a dictionary")

    quotas = dict(DEFAULT_QUOTAS)
    for name, quota in data.items():
        tier_name = str(name).upper()
        if tier_name not in PlanTier.__members__:
            valid = [tier.name for tier in PlanTier]
            raise ValueError(f"Unknown plan '{name}' in plans, must be one of: {valid}")
        if isinstance(quota, bool) or not isinstance(quota, int) or quota < 0:
            raise ValueError(f"Quota for plans.{name} must be an integer >= 0")
        quotas[PlanTier[tier_name]] = quota
    return quotas


def _parse_rates(data) -> Dict[str, Decimal]:
    if not isinstance(data, dict):
        raise ValueError("'rates' must be a dictionary")

    rates = {}
    for model, rate in data.items():
        if "/" not in str(model):
            raise ValueError(f"Rate key '{model}' must be a namespaced model id (provider/name)")
        if isinstance(rate, bool) or not isinstance(rate, (int, float, str)):
            raise ValueError(f"Rate for rates.{model} must be a number")
        try:
            value = Decimal(str(rate))
        except InvalidOperation:
            raise ValueError(f"Rate for rates.{model} must be a number")
        if not value.is_finite() or value < 0:
            raise ValueError(f"Rate for rates.{model} must be >= 0")
        rates[str(model)] = value
    return rates
