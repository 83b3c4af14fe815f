"""Estimator Agent - phase two of an effort estimate.

Assigns hours to each decomposed task and labels the overall confidence.
"""

import json
from typing import List, Optional

from agents.base_agent import BaseAgent, AgentResult
from config import settings
from contracts import DecomposedTask, TaskEstimationResult
from errors import EstimationFailed
from providers import LLMProvider


class TaskEstimatorAgent(BaseAgent):
    """Turns decomposed tasks into per-task hour estimates."""

    SYSTEM_PROMPT = """You are an expert software estimator. Estimate hours for each task based on:
- Complexity level (low: 1-4h, medium: 4-12h, high: 12-40h)
- Category/type of work
- Typical development velocity
- Include buffer for unknowns

Return estimates as JSON:
{
  "estimates": [
    {
      "task": "original task name",
      "hours": 8.5,
      "reasoning": "brief justification"
    }
  ],
  "confidence": "low" | "medium" | "high",
  "confidence_reasoning": "why this confidence level"
}

Keep the tasks in the order given and repeat each task name exactly.

Confidence levels:
- high: Clear requirements, standard technology, minimal unknowns
- medium: Some ambiguity, familiar tech, moderate complexity
- low: Vague requirements, new technology, high complexity"""

    failure_class = EstimationFailed

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(
            role="estimator",
            system_prompt=self.SYSTEM_PROMPT,
            output_schema=TaskEstimationResult,
            llm_provider=llm_provider,
            model=model,
            temperature=settings.estimate_temperature if temperature is None else temperature,
            timeout=timeout,
        )

    def get_task_description(self) -> str:
        return "Task estimation"

    def estimate(self, tasks: List[DecomposedTask]) -> AgentResult:
        """Estimate hours for decomposed tasks.

        Returns:
            AgentResult whose output is a TaskEstimationResult

        Raises:
            EstimationFailed: On provider error, timeout or malformed output
        """
        payload = json.dumps([t.model_dump(mode="json") for t in tasks], indent=2)
        user_message = (
            f"Estimate hours for these tasks:\n{payload}\n\n"
            "Consider:\n"
            "- Developer with moderate experience in the tech stack\n"
            "- Standard working environment\n"
            "- Includes code review and basic testing"
        )
        return self.run(user_message)
