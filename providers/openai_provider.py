"""OpenAI chat completions provider."""

import os
from typing import Any, Dict, Optional

from .base import CompletionRequest, LLMProvider, LLMResponse


class OpenAIProvider(LLMProvider):
    """Calls chat.completions with native JSON mode."""

    MODEL_ALIASES = {
        "gpt4o": "gpt-4o",
        "gpt4o-mini": "gpt-4o-mini",
    }

    def __init__(self, api_key: Optional[str] = None):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. Uses OPENAI_API_KEY env var if not provided.
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._client = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o"

    @property
    def client(self):
        if self._client is None:
            from openai import OpenAI
            self._client = OpenAI(api_key=self.api_key)
        return self._client

    def _request_kwargs(self, request: CompletionRequest, model: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model,
            "max_tokens": request.max_tokens,
            "messages": request.messages(),
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.json_response:
            kwargs["response_format"] = {"type": "json_object"}
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        return kwargs

    def complete(self, request: CompletionRequest) -> LLMResponse:
        model = self.resolve_model(request.model)
        completion = self.client.chat.completions.create(**self._request_kwargs(request, model))

        usage = completion.usage
        return LLMResponse(
            content=completion.choices[0].message.content or "",
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            model=model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
