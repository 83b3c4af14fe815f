"""Token pricing and the cost model for completion calls.

Cost is advisory telemetry: unknown models cost 0.0 instead of failing.
"""

from typing import Dict, Optional

from .base import LLMResponse


# USD per 1M tokens
PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4o": {"input": 2.50, "output": 10.00},
    "gpt-4o-mini": {"input": 0.15, "output": 0.60},
    "gpt-4-turbo": {"input": 10.00, "output": 30.00},
    "gpt-3.5-turbo": {"input": 0.50, "output": 1.50},
    "claude-sonnet-4-20250514": {"input": 3.00, "output": 15.00},
    "claude-3-5-haiku-20241022": {"input": 0.80, "output": 4.00},
}


def _pricing_for(model: Optional[str]) -> Optional[Dict[str, float]]:
    if not model:
        return None
    # LiteLLM model strings carry a provider prefix (anthropic/claude-...)
    return PRICING.get(model) or PRICING.get(model.split("/")[-1])


def calculate_cost(prompt_tokens: int, completion_tokens: int, model: Optional[str]) -> float:
    """Calculate cost in USD for given token usage.

    Args:
        prompt_tokens: Prompt (input) tokens
        completion_tokens: Completion (output) tokens
        model: Model identifier; unknown models yield 0.0

    Returns:
        Cost in USD
    """
    prices = _pricing_for(model)
    if prices is None:
        return 0.0
    input_cost = (max(prompt_tokens or 0, 0) / 1_000_000) * prices["input"]
    output_cost = (max(completion_tokens or 0, 0) / 1_000_000) * prices["output"]
    return input_cost + output_cost


def response_cost(response: LLMResponse) -> float:
    """Cost of a single provider response."""
    return calculate_cost(response.prompt_tokens, response.completion_tokens, response.model)
