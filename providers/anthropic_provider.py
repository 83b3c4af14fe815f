"""Anthropic Messages API provider."""

import os
from typing import Any, Dict, Optional

from .base import CompletionRequest, LLMProvider, LLMResponse

JSON_INSTRUCTION = "\n\nRespond with a single JSON object and nothing else."


class AnthropicProvider(LLMProvider):
    """Calls messages.create; JSON mode is requested through the system prompt."""

    MODEL_ALIASES = {
        "claude-sonnet": "claude-sonnet-4-20250514",
        "claude-haiku": "claude-3-5-haiku-20241022",
        "sonnet": "claude-sonnet-4-20250514",
        "haiku": "claude-3-5-haiku-20241022",
    }

    def __init__(self, api_key: Optional[str] = None):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. Uses ANTHROPIC_API_KEY env var if not provided.
        """
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._client = None

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def client(self):
        if self._client is None:
            from anthropic import Anthropic
            self._client = Anthropic(api_key=self.api_key)
        return self._client

    def _request_kwargs(self, request: CompletionRequest, model: str) -> Dict[str, Any]:
        system = request.system_prompt
        if request.json_response:
            system += JSON_INSTRUCTION
        kwargs: Dict[str, Any] = {
            "model": model,
            "max_tokens": request.max_tokens,
            "system": system,
            "messages": request.messages(include_system=False),
        }
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.timeout is not None:
            kwargs["timeout"] = request.timeout
        return kwargs

    def complete(self, request: CompletionRequest) -> LLMResponse:
        model = self.resolve_model(request.model)
        message = self.client.messages.create(**self._request_kwargs(request, model))

        # BaseAgent strips any markdown fence around the JSON object
        text = "".join(getattr(block, "text", "") for block in message.content)
        return LLMResponse(
            content=text,
            prompt_tokens=message.usage.input_tokens,
            completion_tokens=message.usage.output_tokens,
            model=model,
            provider=self.name,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)
