"""LiteLLM-backed provider: any model LiteLLM can route to, one call shape."""

from typing import Any, Dict, Optional

from .base import CompletionRequest, LLMProvider, LLMResponse


class LiteLLMProvider(LLMProvider):
    """Delegates to litellm.completion() with provider-prefixed model strings."""

    def __init__(self, default_model: str = "gpt-4o", metadata: Optional[dict] = None):
        """Initialize with the LiteLLM model string to use by default.

        Args:
            default_model: LiteLLM model string (e.g. gpt-4o, anthropic/claude-sonnet-4-20250514).
            metadata: Passed through to litellm callbacks on every call (e.g. feature name).
        """
        self._default_model = default_model
        self._metadata = dict(metadata or {})

    @property
    def name(self) -> str:
        return "litellm"

    @property
    def default_model(self) -> str:
        return self._default_model

    def complete(self, request: CompletionRequest) -> LLMResponse:
        import litellm

        model = self.resolve_model(request.model)
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": request.messages(),
            "max_tokens": request.max_tokens,
            "metadata": {**self._metadata, **request.metadata},
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.json_response:
            kwargs["response_format"] = {"type": "json_object"}
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        response = litellm.completion(**kwargs)

        usage = getattr(response, "usage", None)
        return LLMResponse(
            content=response.choices[0].message.content or "",
            prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        """LiteLLM reads vendor keys from the environment itself; a model is enough."""
        return bool(self._default_model)
