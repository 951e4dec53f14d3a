"""
Provider adapter contract.

Each upstream provider family gets one adapter that turns a normalized
request into a provider call and the reply into a NormalizedResponse.
Adapters make exactly one outbound call per dispatch and never retry.
"""

from dataclasses import dataclass

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT_SECONDS = 60.0


@dataclass(frozen=True)
class NormalizedResponse:
    """Provider-independent result of one completed dispatch."""
    text: str
    tokens_consumed: int
    model: str
    provider: str
    exact_usage: bool = True  # False when tokens_consumed is an estimate

    def __post_init__(self):
        if self.tokens_consumed < 0:
            raise ValueError("tokens_consumed cannot be negative")


class ProviderAdapter:
    """Base class for provider adapters."""

    provider: str = ""

    def __init__(self, api_key=None, timeout: float = DEFAULT_TIMEOUT_SECONDS, client=None):
        self.api_key = api_key
        self.timeout = timeout
        self._client = client
        # Injected clients belong to the caller and are never closed here
        self._owns_client = client is None

    def close(self) -> None:
        """Close the client this adapter built, if any."""
        if self._client is not None and self._owns_client:
            self._client.close()
            self._client = None

    def dispatch(
        self,
        model: str,
        prompt: str,
        system_prompt: str,
        max_output_tokens: int,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> NormalizedResponse:
        """Send one completion request upstream.

        Args:
            model: Provider-side model name
            prompt: User prompt, context already rendered in
            system_prompt: System instructions
            max_output_tokens: Output token cap for the model
            temperature: Sampling temperature

        Returns:
            NormalizedResponse; tokens_consumed is never None

        Raises:
            ProviderError: On transport failure, timeout, non-success status
                or a reply that does not match the provider's schema
        """
        raise NotImplementedError
