"""
Anthropic provider adapter.

Messages API through the official SDK; usage is input plus output tokens.
"""

from typing import Optional

import anthropic
from anthropic import Anthropic

from framium.core.errors import ProviderError

from .base import DEFAULT_TEMPERATURE, DEFAULT_TIMEOUT_SECONDS, NormalizedResponse, ProviderAdapter
from .payloads import parse_reply


class AnthropicAdapter(ProviderAdapter):
    """Adapter for Anthropic Claude models."""

    provider = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[Anthropic] = None,
    ):
        super().__init__(api_key=api_key, timeout=timeout, client=client)

    def _get_client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def dispatch(
        self,
        model: str,
        prompt: str,
        system_prompt: str,
        max_output_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> NormalizedResponse:
        if self._client is None and not self.api_key:
            raise ProviderError(self.provider, model, "ANTHROPIC_API_KEY is not configured")

        try:
            message = self._get_client().messages.create(
                model=model,
                max_tokens=max_output_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
        except anthropic.AnthropicError as e:
            raise ProviderError(self.provider, model, str(e) or type(e).__name__) from e

        reply = parse_reply(self.provider, model, message.model_dump())
        return NormalizedResponse(
            text=reply.text,
            tokens_consumed=reply.tokens,
            model=model,
            provider=self.provider,
        )
