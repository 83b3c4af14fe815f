"""Completion providers and the cost model."""

from .base import CompletionRequest, LLMProvider, LLMResponse
from .factory import get_provider, list_providers, provider_for_model
from .pricing import PRICING, calculate_cost, response_cost

__all__ = [
    "CompletionRequest",
    "LLMProvider",
    "LLMResponse",
    "get_provider",
    "list_providers",
    "provider_for_model",
    "PRICING",
    "calculate_cost",
    "response_cost",
]
