"""
Chat request orchestration.

Handles one chat request end to end, in a fixed order:

    RECEIVED -> USER_VALIDATED -> PLAN_CHECKED -> QUOTA_CHECKED
             -> DISPATCHED -> USAGE_RECORDED -> RESPONDED

Early exits are REJECTED (unknown user, model not in plan, quota exceeded)
and FAILED (provider error, unexpected error). Usage is recorded only after a
successful dispatch and always before the success response is built. A
ledger write failure is logged and does not fail the request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

import structlog

from framium.providers.router import RequestRouter, build_default_router
from framium.storage.ledger import COST_QUANTUM, UsageLedger
from framium.storage.models import RequestKind
from framium.storage.users import UserRepository

from .catalog import provider_prefix
from .errors import (
    LedgerWriteError,
    ModelNotAllowed,
    ProviderError,
    QuotaExceededError,
    UnsupportedModel,
    UserNotFound,
    ValidationError,
)
from .plans import PlanCatalog, resolve_tier
from .pricing import DEFAULT_RATE_TABLE, RateTable, calculate_cost
from .prompts import AGENT_MODE, MODES
from .quota import QuotaGuard
from .token_counter import estimate_request_tokens

logger = structlog.get_logger(__name__)

QUOTA_SUGGESTION = "Upgrade your plan or wait for next billing cycle"


class OrchestratorState(Enum):
    """States a chat request passes through."""
    RECEIVED = "received"
    USER_VALIDATED = "user_validated"
    PLAN_CHECKED = "plan_checked"
    QUOTA_CHECKED = "quota_checked"
    DISPATCHED = "dispatched"
    USAGE_RECORDED = "usage_recorded"
    RESPONDED = "responded"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatRequest:
    """Validated chat request."""
    user_id: str
    model: str
    prompt: str
    mode: Optional[str] = None
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "ChatRequest":
        """Build a request from a raw JSON body.

        Raises:
            ValidationError: Listing every missing or malformed field
        """
        if not isinstance(payload, Mapping):
            raise ValidationError({"body": "must be a JSON object"})

        errors: Dict[str, str] = {}
        for name in ("userId", "model", "prompt"):
            value = payload.get(name)
            if value is None or value == "":
                errors[name] = "is required"
            elif not isinstance(value, str) or not value.strip():
                errors[name] = "must be a non-empty string"

        mode = payload.get("mode")
        if mode is not None and mode not in MODES:
            errors["mode"] = f"must be one of: {list(MODES)}"

        context = payload.get("context")
        if context is not None and not isinstance(context, Mapping):
            errors["context"] = "must be an object"

        if errors:
            raise ValidationError(errors)

        return cls(
            user_id=payload["userId"].strip(),
            model=payload["model"].strip(),
            prompt=payload["prompt"],
            mode=mode,
            context=dict(context or {}),
        )

    def kind(self, mode: str) -> RequestKind:
        if self.context.get("taskId"):
            return RequestKind.TASK
        if mode == AGENT_MODE:
            return RequestKind.AGENT
        return RequestKind.CHAT


@dataclass(frozen=True)
class ChatResult:
    """HTTP-shaped outcome of one chat request."""
    status_code: int
    body: Dict[str, Any]
    state: OrchestratorState
    trail: Tuple[OrchestratorState, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class ChatOrchestrator:
    """Validate, authorize, admit, dispatch, account, respond."""

    def __init__(
        self,
        users,
        ledger,
        plans: PlanCatalog,
        guard: QuotaGuard,
        router: RequestRouter,
        rates: RateTable = DEFAULT_RATE_TABLE,
        debug: bool = False,
    ):
        """
        Args:
            users: Anything with get_user(user_id) -> Optional[User]
            ledger: Anything with record(...) as UsageLedger
            plans: Plan catalog
            guard: Quota guard reading the same ledger
            router: Request router
            rates: Rate table for cost calculation
            debug: Include internal error detail in 5xx responses
        """
        self.users = users
        self.ledger = ledger
        self.plans = plans
        self.guard = guard
        self.router = router
        self.rates = rates
        self.debug = debug

    def close(self) -> None:
        """Release provider clients held by the router."""
        self.router.close()

    def handle(self, payload: Any) -> ChatResult:
        """Run one chat request through the full state machine.

        Never raises: every failure is scoped to this request and returned
        as a ChatResult.
        """
        trail = [OrchestratorState.RECEIVED]

        def finish(status: int, body: Dict[str, Any], state: OrchestratorState) -> ChatResult:
            trail.append(state)
            return ChatResult(status_code=status, body=body, state=state, trail=tuple(trail))

        try:
            request = ChatRequest.from_payload(payload)
        except ValidationError as e:
            return finish(400, {
                "error": f"Missing or invalid fields: {', '.join(sorted(e.fields))}",
                "fields": e.fields,
            }, OrchestratorState.REJECTED)

        log = logger.bind(user_id=request.user_id, model=request.model)

        try:
            user = self.users.get_user(request.user_id)
            if user is None:
                raise UserNotFound(request.user_id)
            trail.append(OrchestratorState.USER_VALIDATED)

            tier = resolve_tier(user.plan)
            plan = self.plans.plan(tier)
            mode = request.mode or plan.default_mode

            required = self.plans.required_tier(request.model)
            if required is None:
                raise UnsupportedModel(request.model, provider_prefix(request.model))
            if not self.plans.is_model_allowed(tier, request.model):
                raise ModelNotAllowed(request.model, required.name, tier.name)
            trail.append(OrchestratorState.PLAN_CHECKED)

            estimated = estimate_request_tokens(request.prompt, request.context)
            self.guard.enforce(user.id, tier, estimated)
            trail.append(OrchestratorState.QUOTA_CHECKED)

            response = self.router.route(
                request.model,
                request.prompt,
                {**request.context, "mode": mode, "userId": user.id, "userPlan": tier.name},
            )
            trail.append(OrchestratorState.DISPATCHED)

            # Billed and reported cost are the same stored value
            cost = calculate_cost(request.model, response.tokens_consumed, self.rates).quantize(COST_QUANTUM)
            try:
                self.ledger.record(
                    user.id,
                    request.model,
                    response.tokens_consumed,
                    cost,
                    request.kind(mode),
                )
                trail.append(OrchestratorState.USAGE_RECORDED)
            except LedgerWriteError as e:
                # Availability over billing: the user still gets the output
                log.error(
                    "usage_record_failed",
                    tokens=response.tokens_consumed,
                    cost=str(cost),
                    error=str(e),
                )

            log.info(
                "chat_completed",
                provider=response.provider,
                tokens=response.tokens_consumed,
                estimated_tokens=estimated,
                exact_usage=response.exact_usage,
            )
            return finish(200, {
                "result": response.text,
                "model": response.model,
                "tokenUsage": response.tokens_consumed,
                "cost": float(cost),
                "mode": mode,
            }, OrchestratorState.RESPONDED)

        except UserNotFound:
            log.info("chat_rejected", reason="user_not_found")
            return finish(404, {"error": "User not found"}, OrchestratorState.REJECTED)

        except ModelNotAllowed as e:
            log.info("chat_rejected", reason="model_not_allowed", current_plan=e.current_plan)
            return finish(403, {
                "error": "Plan upgrade required for this model",
                "requiredPlan": e.required_plan,
                "currentPlan": e.current_plan,
            }, OrchestratorState.REJECTED)

        except QuotaExceededError as e:
            log.info("chat_rejected", reason="quota_exceeded", used=e.used, quota=e.quota, requested=e.requested)
            return finish(429, {
                "error": "Token limit exceeded for current plan",
                "suggestion": QUOTA_SUGGESTION,
            }, OrchestratorState.REJECTED)

        except ProviderError as e:
            log.error(
                "provider_dispatch_failed",
                provider=e.provider,
                error=e.detail,
                error_type=type(e).__name__,
            )
            body = {"error": "AI service temporarily unavailable"}
            if self.debug:
                body["details"] = str(e)
            return finish(502, body, OrchestratorState.FAILED)

        except Exception as e:
            log.exception("chat_request_failed", error_type=type(e).__name__)
            body = {"error": "Internal server error"}
            if self.debug:
                body["details"] = f"{type(e).__name__}: {e}"
            return finish(500, body, OrchestratorState.FAILED)


def build_orchestrator(config) -> ChatOrchestrator:
    """Construct the orchestrator and its collaborators from configuration."""
    models = config.build_catalog()
    plans = config.build_plan_catalog(models)
    ledger = UsageLedger(config.database)
    return ChatOrchestrator(
        users=UserRepository(config.database),
        ledger=ledger,
        plans=plans,
        guard=QuotaGuard(ledger, plans),
        router=build_default_router(config, models),
        rates=config.build_rate_table(models),
        debug=config.debug,
    )
