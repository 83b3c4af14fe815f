"""Decomposer Agent - phase one of an effort estimate.

Breaks a work item into 3-8 concrete, measurable sub-tasks tagged with
complexity and category, and surfaces assumptions and risks.
"""

from typing import Optional

from agents.base_agent import BaseAgent, AgentResult
from config import settings
from contracts import DecompositionResult, ItemKind
from errors import DecompositionFailed
from providers import LLMProvider


class TaskDecomposerAgent(BaseAgent):
    """Turns a title/description into an ordered list of sub-tasks."""

    SYSTEM_PROMPT = """You are an expert software project estimator. Your task is to break down work into specific, measurable tasks.

Rules:
1. Decompose into 3-8 concrete tasks (fewer for simple work, more for complex)
2. Each task should be specific and actionable
3. Include common software development phases (design, implementation, testing, etc.)
4. Consider the item type: {item_hint}
5. Be realistic about what each task involves

Return tasks as a JSON object with this structure:
{{
  "tasks": [
    {{
      "name": "Task description",
      "complexity": "low" | "medium" | "high",
      "category": "design" | "backend" | "frontend" | "testing" | "devops" | "documentation"
    }}
  ],
  "assumptions": ["assumption 1", "assumption 2"],
  "risks": ["risk 1", "risk 2"]
}}"""

    ITEM_HINTS = {
        ItemKind.ISSUE: "features/bugs typically involve multiple components",
        ItemKind.ACTION_ITEM: "action items are usually more focused tasks",
    }

    failure_class = DecompositionFailed

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(
            role="decomposer",
            system_prompt=self.SYSTEM_PROMPT.format(item_hint=self.ITEM_HINTS[ItemKind.ISSUE]),
            output_schema=DecompositionResult,
            llm_provider=llm_provider,
            model=model,
            temperature=settings.decompose_temperature if temperature is None else temperature,
            timeout=timeout,
        )

    def get_task_description(self) -> str:
        return "Task decomposition"

    def decompose(
        self,
        title: str,
        description: Optional[str],
        item_kind: ItemKind = ItemKind.ISSUE,
    ) -> AgentResult:
        """Decompose one work item.

        Returns:
            AgentResult whose output is a DecompositionResult

        Raises:
            DecompositionFailed: On provider error, timeout or malformed output
        """
        item_kind = ItemKind(item_kind)
        user_message = (
            f"Title: {title}\n"
            f"Description: {description or 'No detailed description provided'}\n\n"
            f"Decompose this {item_kind.value} into specific tasks."
        )
        system_prompt = self.SYSTEM_PROMPT.format(item_hint=self.ITEM_HINTS[item_kind])
        return self.run(user_message, system_prompt=system_prompt)
