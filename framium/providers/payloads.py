"""
Typed provider replies.

Raw upstream JSON is validated here, at the adapter boundary, into one
variant per provider. A payload that does not match becomes a ProviderError
instead of a missing-field access further down.
"""

from typing import Annotated, Any, List, Literal, Mapping, Optional, Union

import pydantic
from pydantic import BaseModel, Field, NonNegativeInt, TypeAdapter

from framium.core.errors import ProviderError


# OpenAI chat completions

class OpenAIMessage(BaseModel):
    content: Optional[str] = None


class OpenAIChoice(BaseModel):
    message: OpenAIMessage


class OpenAIUsage(BaseModel):
    prompt_tokens: NonNegativeInt = 0
    completion_tokens: NonNegativeInt = 0
    total_tokens: NonNegativeInt


class OpenAIReply(BaseModel):
    provider: Literal["openai"] = "openai"
    id: Optional[str] = None
    choices: List[OpenAIChoice]
    usage: OpenAIUsage

    @property
    def text(self) -> str:
        if not self.choices:
            return ""
        return self.choices[0].message.content or ""

    @property
    def tokens(self) -> int:
        return self.usage.total_tokens


# Anthropic messages

class AnthropicBlock(BaseModel):
    type: str
    text: Optional[str] = None


class AnthropicUsage(BaseModel):
    input_tokens: NonNegativeInt
    output_tokens: NonNegativeInt


class AnthropicReply(BaseModel):
    provider: Literal["anthropic"] = "anthropic"
    id: Optional[str] = None
    content: List[AnthropicBlock]
    usage: AnthropicUsage

    @property
    def text(self) -> str:
        if self.content and self.content[0].type == "text":
            return self.content[0].text or ""
        return ""

    @property
    def tokens(self) -> int:
        return self.usage.input_tokens + self.usage.output_tokens


# Gemini generateContent

class GeminiPart(BaseModel):
    text: Optional[str] = None


class GeminiContent(BaseModel):
    parts: List[GeminiPart] = Field(default_factory=list)


class GeminiCandidate(BaseModel):
    content: GeminiContent = Field(default_factory=GeminiContent)


class GeminiReply(BaseModel):
    provider: Literal["google"] = "google"
    candidates: List[GeminiCandidate] = Field(default_factory=list)

    @property
    def text(self) -> str:
        if not self.candidates or not self.candidates[0].content.parts:
            return ""
        return self.candidates[0].content.parts[0].text or ""


ProviderReply = Annotated[
    Union[OpenAIReply, AnthropicReply, GeminiReply],
    Field(discriminator="provider"),
]

_reply_adapter: TypeAdapter = TypeAdapter(ProviderReply)


def parse_reply(provider: str, model: str, raw: Any):
    """Validate a raw reply into the variant for its provider.

    Raises:
        ProviderError: If the payload is not a mapping or does not validate
    """
    if not isinstance(raw, Mapping):
        raise ProviderError(provider, model, f"Malformed response: expected an object, got {type(raw).__name__}")
    try:
        return _reply_adapter.validate_python({**raw, "provider": provider})
    except pydantic.ValidationError as e:
        raise ProviderError(provider, model, f"Malformed response: {e.error_count()} validation error(s)") from e
