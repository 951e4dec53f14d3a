"""
Token estimation heuristics.

Roughly four characters per token. Used for admission checks before a
request is dispatched, and for billing providers that report no usage.
"""

import json
import math
from typing import Any, Mapping, Optional

CHARS_PER_TOKEN = 4
RESPONSE_ALLOWANCE = 1.5  # Expected response length relative to the input

# Context entries that are serialized into the prompt sent upstream
ESTIMATED_CONTEXT_KEYS = ("selectedFrames", "projectContext")


def estimate_request_tokens(prompt: str, context: Optional[Mapping[str, Any]] = None) -> int:
    """Estimate the tokens a pending request will consume.

    Conservative on purpose: long requests are more likely to be refused
    than over-admitted.

    Args:
        prompt: User prompt
        context: Optional canvas context sent with the prompt

    Returns:
        ceil(ceil(chars / 4) * 1.5)
    """
    chars = len(prompt or "")
    if context:
        for key in ESTIMATED_CONTEXT_KEYS:
            if context.get(key):
                chars += len(json.dumps(context[key], default=str))

    input_tokens = math.ceil(chars / CHARS_PER_TOKEN)
    return math.ceil(input_tokens * RESPONSE_ALLOWANCE)


def estimate_consumed_tokens(prompt: str, response_text: str) -> int:
    """Deterministic usage estimate for providers that report none."""
    return math.ceil((len(prompt or "") + len(response_text or "")) / CHARS_PER_TOKEN)
