"""
Error taxonomy for chat request handling.

Every failure a chat request can hit is one of these. They are raised where
the condition is detected and translated into an HTTP-shaped result only at
the orchestrator boundary.
"""

from typing import Dict, Optional


class FramiumError(Exception):
    """Base exception for Framium."""


class ValidationError(FramiumError):
    """Raised when a request is missing fields or carries malformed ones."""

    def __init__(self, fields: Dict[str, str]):
        self.fields = dict(fields)
        names = ", ".join(sorted(self.fields))
        super().__init__(f"Invalid request fields: {names}")


class AuthorizationError(FramiumError):
    """Raised when a request may not proceed for this user."""


class UserNotFound(AuthorizationError):
    """Raised when the requesting user does not exist."""

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class ModelNotAllowed(AuthorizationError):
    """Raised when the user's plan does not grant the requested model."""

    def __init__(self, model: str, required_plan: str, current_plan: str):
        self.model = model
        self.required_plan = required_plan
        self.current_plan = current_plan
        super().__init__(
            f"Model {model} requires plan {required_plan}, user is on {current_plan}"
        )


class QuotaExceededError(FramiumError):
    """Raised when admitting a request would exceed the monthly token quota."""

    def __init__(self, used: int, quota: int, requested: int):
        self.used = used
        self.quota = quota
        self.requested = requested
        super().__init__(
            f"Monthly token quota exceeded: {used} used + {requested} requested > {quota}"
        )


class ProviderError(FramiumError):
    """Raised when an upstream LLM call fails or returns an unusable payload."""

    def __init__(self, provider: str, model: str, detail: str):
        self.provider = provider
        self.model = model
        self.detail = detail
        super().__init__(f"{provider} API Error ({model}): {detail}")


class UnsupportedModel(ProviderError):
    """Raised when no provider adapter recognizes a model id."""

    def __init__(self, model: str, provider: Optional[str] = None):
        super().__init__(provider or "unknown", model, f"Unsupported model: {model}")


class LedgerWriteError(FramiumError):
    """Raised when a usage record cannot be appended to the ledger."""
