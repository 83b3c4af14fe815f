"""Base agent class that both LLM phases inherit from.

Every agent:
- Calls the completion provider with its system prompt + a task message
- Validates the JSON output against the expected Pydantic contract
- Tracks token usage and cost for telemetry
- Converts any provider, timeout or parse failure into its phase's error
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Type, TypeVar, Optional, Any

from pydantic import BaseModel, ValidationError

from config import settings
from errors import EffortEngineError
from providers import CompletionRequest, LLMProvider, get_provider, response_cost

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def _strip_fence(text: Optional[str]) -> str:
    """Body of the first markdown code block, or the text itself."""
    text = (text or "").strip()
    match = _FENCE.search(text)
    return match.group(1).strip() if match else text


class TokenUsage(BaseModel):
    """Token usage for a single call."""
    prompt_tokens: int = 0
    completion_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class AgentResult(BaseModel):
    """Result from an agent run, including output and metadata."""
    output: Any
    token_usage: TokenUsage
    model: str
    provider: str
    cost_usd: float = 0.0
    raw_response: Optional[str] = None


class BaseAgent(ABC):
    """Base class for the decomposition and estimation agents.

    Calls are made once: retry policy belongs to the caller.
    """

    #: Raised for every failure of this agent's call
    failure_class: Type[EffortEngineError] = EffortEngineError

    def __init__(
        self,
        role: str,
        system_prompt: str,
        output_schema: Type[T],
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        """Initialize the agent.

        Args:
            role: Agent role tagged on logs and provider metadata (e.g., 'decomposer')
            system_prompt: The agent's system prompt defining its behavior
            output_schema: Pydantic model class for validating output
            llm_provider: Provider instance; resolved from model/settings if omitted
            model: Override the default model (e.g., 'gpt-4o', 'claude-sonnet')
            temperature: Sampling temperature for this agent
            max_tokens: Completion token cap (settings.max_tokens_per_call)
            timeout: Seconds per call (settings.api_timeout_seconds)
        """
        self.role = role
        self.system_prompt = system_prompt
        self.output_schema = output_schema
        self.model = model or settings.default_model
        self.temperature = temperature
        self.max_tokens = max_tokens or settings.max_tokens_per_call
        self.timeout = timeout or settings.api_timeout_seconds
        self.llm_provider: LLMProvider = llm_provider or get_provider(model=self.model)

    def _parse_and_validate(self, response_text: str) -> T:
        """Parse LLM response and validate against schema.

        Args:
            response_text: Raw text response from LLM

        Returns:
            Validated Pydantic model instance

        Raises:
            ValidationError: If response doesn't match schema
            json.JSONDecodeError: If response isn't valid JSON
        """
        data = json.loads(_strip_fence(response_text))
        return self.output_schema.model_validate(data)

    def run(self, user_message: str, system_prompt: Optional[str] = None) -> AgentResult:
        """Execute the agent once.

        Args:
            user_message: Task message for this phase
            system_prompt: Per-call system prompt (defaults to self.system_prompt)

        Returns:
            AgentResult with validated output and metadata

        Raises:
            failure_class: If the call errors, times out, or the output is malformed
        """
        try:
            response = self.llm_provider.complete(CompletionRequest(
                system_prompt=system_prompt or self.system_prompt,
                user_prompt=user_message,
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                json_response=True,
                timeout=self.timeout,
                metadata={"agent": self.role},
            ))
        except Exception as e:
            logger.warning("[Agent:%s] %s failed: %s", self.role, self.get_task_description(), e)
            raise self.failure_class(f"{self.get_task_description()} failed: {e}") from e

        try:
            output = self._parse_and_validate(response.content)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("[Agent:%s] Malformed output from %s", self.role, response.model)
            raise self.failure_class(
                f"{self.get_task_description()} returned malformed output: {e}"
            ) from e

        logger.debug(
            "[Agent:%s] %s/%s: %d prompt + %d completion tokens",
            self.role, response.provider, response.model, response.prompt_tokens, response.completion_tokens,
        )
        return AgentResult(
            output=output,
            token_usage=TokenUsage(
                prompt_tokens=response.prompt_tokens,
                completion_tokens=response.completion_tokens,
            ),
            model=response.model,
            provider=response.provider,
            cost_usd=response_cost(response),
            raw_response=response.content,
        )

    @abstractmethod
    def get_task_description(self) -> str:
        """Return a description of what this agent does.

        Used for logging and error messages.
        """
        pass
