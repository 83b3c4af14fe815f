"""Provider registry and factory."""

from typing import Dict, Optional, Tuple, Type

from .base import LLMProvider
from .anthropic_provider import AnthropicProvider
from .openai_provider import OpenAIProvider
from .litellm_provider import LiteLLMProvider
from config import settings


# Registry of available providers
PROVIDERS: Dict[str, Type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "litellm": LiteLLMProvider,
}

# Alternative names accepted by get_provider
PROVIDER_ALIASES: Dict[str, str] = {
    "gpt": "openai",
    "claude": "anthropic",
}

# Model name prefixes that identify a provider, checked in order
MODEL_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("gpt-", "openai"),
    ("gpt4", "openai"),
    ("o1", "openai"),
    ("claude", "anthropic"),
    ("sonnet", "anthropic"),
    ("haiku", "anthropic"),
)


def provider_for_model(model: str) -> Optional[str]:
    """Provider name implied by a model string, or None if it is not recognised.

    LiteLLM-style strings with a vendor prefix (mistral/..., anthropic/...)
    always go through LiteLLM.
    """
    model_lower = model.lower()
    if "/" in model_lower:
        return "litellm"
    for prefix, provider in MODEL_PREFIXES:
        if model_lower.startswith(prefix):
            return provider
    return None


def _build(provider_key: str, model: Optional[str]) -> LLMProvider:
    if provider_key == "openai":
        return OpenAIProvider(api_key=settings.openai_api_key or None)
    if provider_key == "anthropic":
        return AnthropicProvider(api_key=settings.anthropic_api_key or None)
    return LiteLLMProvider(default_model=model or settings.default_model)


def get_provider(
    provider_name: Optional[str] = None,
    model: Optional[str] = None,
) -> LLMProvider:
    """Get an LLM provider instance.

    Args:
        provider_name: Explicit provider name (openai, anthropic, litellm, or an alias)
        model: Model name; selects the provider when provider_name is omitted

    Returns:
        LLMProvider instance

    Raises:
        ValueError: If provider_name is not registered

    Examples:
        get_provider("openai")
        get_provider(model="claude-sonnet")       # AnthropicProvider
        get_provider(model="mistral/mistral-large-latest")  # LiteLLMProvider
        get_provider()                            # settings.default_provider
    """
    if provider_name:
        provider_key = PROVIDER_ALIASES.get(provider_name.lower(), provider_name.lower())
        if provider_key not in PROVIDERS:
            raise ValueError(
                f"Unknown provider: {provider_name}. "
                f"Available: {sorted(set(PROVIDERS) | set(PROVIDER_ALIASES))}"
            )
        return _build(provider_key, model)

    provider_key = provider_for_model(model) if model else None
    return _build(provider_key or settings.default_provider.lower(), model)


def list_providers() -> Dict[str, bool]:
    """Map each registered provider to whether it is usable (API key set)."""
    return {name: _build(name, None).is_available() for name in PROVIDERS}
