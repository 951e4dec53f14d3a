"""
Google Gemini provider adapter.

Calls the generateContent REST endpoint directly with httpx. Gemini replies
are not relied on for token counts; usage is estimated from the characters
sent and received so billing always has a number.
"""

from typing import Optional

import httpx

from framium.core.errors import ProviderError
from framium.core.token_counter import estimate_consumed_tokens

from .base import DEFAULT_TEMPERATURE, DEFAULT_TIMEOUT_SECONDS, NormalizedResponse, ProviderAdapter
from .payloads import parse_reply

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(ProviderAdapter):
    """Adapter for Google Gemini models."""

    provider = "google"

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        client: Optional[httpx.Client] = None,
        base_url: str = GEMINI_BASE_URL,
    ):
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self.base_url = base_url.rstrip("/")

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self.timeout)
        return self._client

    def dispatch(
        self,
        model: str,
        prompt: str,
        system_prompt: str,
        max_output_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> NormalizedResponse:
        if not self.api_key:
            raise ProviderError(self.provider, model, "GEMINI_API_KEY is not configured")

        full_prompt = f"{system_prompt}\n\nUser: {prompt}"
        try:
            response = self._get_client().post(
                f"{self.base_url}/models/{model}:generateContent",
                headers={"x-goog-api-key": self.api_key},
                json={
                    "contents": [{"parts": [{"text": full_prompt}]}],
                    "generationConfig": {
                        "temperature": temperature,
                        "maxOutputTokens": max_output_tokens,
                    },
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(self.provider, model, f"{status} {e.response.reason_phrase}") from e
        except httpx.HTTPError as e:
            raise ProviderError(self.provider, model, str(e) or type(e).__name__) from e

        try:
            raw = response.json()
        except ValueError as e:
            raise ProviderError(self.provider, model, "Malformed response: body is not JSON") from e

        reply = parse_reply(self.provider, model, raw)
        return NormalizedResponse(
            text=reply.text,
            tokens_consumed=estimate_consumed_tokens(prompt, reply.text),
            model=model,
            provider=self.provider,
            exact_usage=False,
        )
