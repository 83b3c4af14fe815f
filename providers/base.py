"""Completion provider interface.

The engine treats a provider as an opaque call: a CompletionRequest goes in,
an LLMResponse with content and token usage comes out. Any exception a
provider raises is turned into a phase failure by the calling agent.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class CompletionRequest:
    """One completion call."""
    system_prompt: str
    user_prompt: str
    model: Optional[str] = None
    max_tokens: int = 1000
    temperature: Optional[float] = None
    json_response: bool = False
    timeout: Optional[float] = None
    #: Caller tags forwarded to providers that support callbacks (e.g. {"agent": "decomposer"})
    metadata: Dict[str, str] = field(default_factory=dict)

    def messages(self, include_system: bool = True) -> List[Dict[str, str]]:
        """Chat messages in the OpenAI shape."""
        messages = [{"role": "user", "content": self.user_prompt}]
        if include_system:
            messages.insert(0, {"role": "system", "content": self.system_prompt})
        return messages


@dataclass
class LLMResponse:
    """Content and usage returned by any provider."""
    content: str
    prompt_tokens: int
    completion_tokens: int
    model: str
    provider: str

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class LLMProvider(ABC):
    """Abstract base class for completion providers."""

    #: Short model names accepted in place of the full identifier
    MODEL_ALIASES: Dict[str, str] = {}

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (openai, anthropic, litellm)."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Model used when a request names none."""

    @abstractmethod
    def complete(self, request: CompletionRequest) -> LLMResponse:
        """Run one completion.

        Raises:
            Exception: Whatever the vendor client raises, timeouts included
        """

    def resolve_model(self, model: Optional[str]) -> str:
        if not model:
            return self.default_model
        return self.MODEL_ALIASES.get(model, model)

    def is_available(self) -> bool:
        """Check if this provider is available (API key set, etc.)."""
        return True
