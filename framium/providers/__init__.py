"""
Provider adapters for Framium.

Translates normalized chat requests into calls to upstream LLM providers.
"""

from .anthropic_adapter import AnthropicAdapter
from .base import NormalizedResponse, ProviderAdapter
from .gemini_adapter import GeminiAdapter
from .openai_adapter import OpenAIAdapter
from .router import RequestRouter, build_default_router

__all__ = [
    "AnthropicAdapter",
    "GeminiAdapter",
    "NormalizedResponse",
    "OpenAIAdapter",
    "ProviderAdapter",
    "RequestRouter",
    "build_default_router",
]
