"""
OpenAI provider adapter.

Chat completions through the official SDK; usage is reported exactly.
"""

from typing import Optional

import openai
from openai import OpenAI

from framium.core.errors import ProviderError

from .base import DEFAULT_TEMPERATURE, DEFAULT_TIMEOUT_SECONDS, NormalizedResponse, ProviderAdapter
from .payloads import parse_reply


class OpenAIAdapter(ProviderAdapter):
    """Adapter for OpenAI chat models."""

    provider = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[OpenAI] = None,
    ):
        """Initialize the adapter.

        The SDK client is created on first dispatch so that a missing key
        fails the request, not process start.

        Args:
            api_key: OpenAI API key, from ApiKeys
            timeout: Request timeout in seconds
            client: Pre-built client, mainly for tests
        """
        super().__init__(api_key=api_key, timeout=timeout, client=client)

    def _get_client(self) -> OpenAI:
        if self._client is None:
            # Retries are the caller's decision, never the adapter's
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
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
            raise ProviderError(self.provider, model, "OPENAI_API_KEY is not configured")

        try:
            response = self._get_client().chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_output_tokens,
                temperature=temperature,
            )
        except openai.OpenAIError as e:
            raise ProviderError(self.provider, model, str(e) or type(e).__name__) from e

        reply = parse_reply(self.provider, model, response.model_dump())
        return NormalizedResponse(
            text=reply.text,
            tokens_consumed=reply.tokens,
            model=model,
            provider=self.provider,
        )
