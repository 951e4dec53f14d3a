"""
Request router.

Resolves a namespaced model id to its provider adapter and dispatches.
"""

from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Optional

import structlog

from framium.core.catalog import DEFAULT_CATALOG, ModelCatalog, provider_prefix
from framium.core.errors import UnsupportedModel
from framium.core.prompts import ASK_MODE, build_user_prompt, system_prompt

from .anthropic_adapter import AnthropicAdapter
from .base import DEFAULT_TEMPERATURE, NormalizedResponse, ProviderAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter

logger = structlog.get_logger(__name__)


class RequestRouter:
    """Routes a model id to the adapter owning its provider prefix.

    The first adapter whose provider matches the prefix wins. Catalog
    construction guarantees no two providers share a prefix.
    """

    def __init__(self, adapters: Iterable[ProviderAdapter], models: ModelCatalog = DEFAULT_CATALOG):
        self.adapters: List[ProviderAdapter] = list(adapters)
        self.models = models

    def resolve(self, model_id: str) -> ProviderAdapter:
        """Find the adapter for a model id.

        Raises:
            UnsupportedModel: If no adapter recognizes the id
        """
        prefix = provider_prefix(model_id)
        for adapter in self.adapters:
            if prefix is not None and adapter.provider == prefix:
                return adapter
        raise UnsupportedModel(model_id, prefix)

    def close(self) -> None:
        for adapter in self.adapters:
            adapter.close()

    def route(
        self,
        model_id: str,
        prompt: str,
        context: Optional[Mapping[str, Any]] = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> NormalizedResponse:
        """Dispatch a prompt to the provider serving model_id.

        Args:
            model_id: Namespaced model id, e.g. "openai/gpt-4o"
            prompt: User prompt
            context: Canvas context; "mode" selects the system prompt
            temperature: Sampling temperature

        Returns:
            NormalizedResponse whose model is the namespaced id

        Raises:
            UnsupportedModel: If no adapter recognizes the id
            ProviderError: If the dispatch fails
        """
        adapter = self.resolve(model_id)
        context = context or {}

        descriptor = self.models.get(model_id)
        upstream = descriptor.upstream_name if descriptor else model_id.split("/", 1)[1]
        if not upstream:
            raise UnsupportedModel(model_id, adapter.provider)

        logger.debug("provider_dispatch", provider=adapter.provider, model=model_id)
        response = adapter.dispatch(
            upstream,
            build_user_prompt(prompt, context),
            system_prompt(context.get("mode", ASK_MODE)),
            self.models.max_output_tokens(model_id),
            temperature,
        )
        return replace(response, model=model_id)


def build_default_router(config, models: Optional[ModelCatalog] = None) -> RequestRouter:
    """Wire the OpenAI, Anthropic and Gemini adapters from configuration.

    Args:
        config: FramiumConfig supplying API keys and the provider timeout
        models: Model catalog, defaults to the one built from config
    """
    keys = config.api_keys
    timeout = config.provider_timeout_seconds
    return RequestRouter(
        adapters=[
            OpenAIAdapter(api_key=keys.openai, timeout=timeout),
            AnthropicAdapter(api_key=keys.anthropic, timeout=timeout),
            GeminiAdapter(api_key=keys.gemini, timeout=timeout),
        ],
        models=models or config.build_catalog(),
    )
