"""Estimate Orchestrator - combines decomposition and estimation into one estimate.

The orchestrator:
1. Gates the input (short titles are rejected, thin descriptions degrade)
2. Runs the decomposer, then the estimator on its tasks
3. Joins task metadata onto the estimated hours
4. Sums tokens and cost across both phases

No exception escapes generate_effort_estimate except InvalidInput.
"""

import logging
import time
from typing import Dict, List, Optional, Union

from agents import TaskDecomposerAgent, TaskEstimatorAgent
from config import settings
from contracts import (
    BreakdownItem,
    Complexity,
    Confidence,
    DecomposedTask,
    EstimateFailure,
    EstimateMetadata,
    EstimateResult,
    ItemKind,
    TaskEstimate,
    TokenTotals,
)
from errors import DecompositionFailed, EstimationFailed, InvalidInput
from providers import LLMProvider

logger = logging.getLogger(__name__)

INSUFFICIENT_DESCRIPTION = "insufficient_description"
DECOMPOSITION_FAILED = "decomposition_failed"
ESTIMATION_FAILED = "estimation_failed"


def _task_key(task_name: str) -> str:
    """Normalize task name for matching."""
    return task_name.strip().lower() or "_"


def join_breakdown(tasks: List[DecomposedTask], estimates: List[TaskEstimate]) -> List[BreakdownItem]:
    """Attach complexity/category from decomposed tasks to estimated hours.

    Each estimate is matched to the first unused decomposed task with the same
    normalized name; when the model renamed the task, the unused task at the
    same position is used instead. A decomposed task is matched at most once.
    Estimates with no counterpart get complexity medium, category development.
    """
    by_name: Dict[str, List[int]] = {}
    for index, task in enumerate(tasks):
        by_name.setdefault(_task_key(task.name), []).append(index)

    used = set()
    breakdown: List[BreakdownItem] = []
    for position, estimate in enumerate(estimates):
        candidates = [i for i in by_name.get(_task_key(estimate.task), []) if i not in used]
        if candidates:
            match = candidates[0]
        elif position < len(tasks) and position not in used:
            match = position
        else:
            match = None
        task = None
        if match is not None:
            used.add(match)
            task = tasks[match]
        breakdown.append(BreakdownItem(
            task=estimate.task,
            hours=estimate.hours,
            complexity=task.complexity if task else Complexity.MEDIUM,
            category=task.category if task else "development",
            reasoning=estimate.reasoning,
        ))
    return breakdown


class EstimateOrchestrator:
    """Two-phase AI effort estimate for a single work item."""

    def __init__(
        self,
        decomposer: Optional[TaskDecomposerAgent] = None,
        estimator: Optional[TaskEstimatorAgent] = None,
        llm_provider: Optional[LLMProvider] = None,
        model: Optional[str] = None,
        min_title_length: Optional[int] = None,
        min_description_length: Optional[int] = None,
    ):
        """Initialize the orchestrator.

        Args:
            decomposer: Phase one agent (built from llm_provider/model if omitted)
            estimator: Phase two agent (built from llm_provider/model if omitted)
            llm_provider: Provider shared by both default agents
            model: Model shared by both default agents
            min_title_length: Titles shorter than this raise InvalidInput
            min_description_length: Descriptions shorter than this return a soft failure
        """
        self.model = model or settings.default_model
        self.decomposer = decomposer or TaskDecomposerAgent(llm_provider=llm_provider, model=self.model)
        self.estimator = estimator or TaskEstimatorAgent(llm_provider=llm_provider, model=self.model)
        self.min_title_length = (
            settings.min_title_length if min_title_length is None else min_title_length
        )
        self.min_description_length = (
            settings.min_description_length if min_description_length is None else min_description_length
        )

    def generate_effort_estimate(
        self,
        title: str,
        description: Optional[str],
        item_kind: ItemKind = ItemKind.ISSUE,
        user_id: Optional[int] = None,
        project_id: Optional[int] = None,
    ) -> Union[EstimateResult, EstimateFailure]:
        """Generate a complete estimate for one work item.

        Returns:
            EstimateResult on success, EstimateFailure on thin input or any
            phase failure

        Raises:
            InvalidInput: If the title is too short (no provider call is made)
        """
        if not title or len(title.strip()) < self.min_title_length:
            raise InvalidInput(
                f"Title must be at least {self.min_title_length} characters for estimation"
            )

        if not description or len(description.strip()) < self.min_description_length:
            logger.info("[Estimate] Description too short for '%s'; skipping AI estimate", title)
            return EstimateFailure(
                error=INSUFFICIENT_DESCRIPTION,
                message=(
                    f"Description must be at least {self.min_description_length} characters "
                    "for AI estimation. Please provide more details."
                ),
                confidence=Confidence.LOW,
            )

        started = time.monotonic()
        try:
            decomposition = self.decomposer.decompose(title, description, ItemKind(item_kind))
            estimation = self.estimator.estimate(decomposition.output.tasks)
        except DecompositionFailed as e:
            logger.error("[Estimate] Decomposition failed for '%s': %s", title, e)
            return EstimateFailure(error=DECOMPOSITION_FAILED, message=str(e))
        except EstimationFailed as e:
            logger.error("[Estimate] Estimation failed for '%s': %s", title, e)
            return EstimateFailure(error=ESTIMATION_FAILED, message=str(e))
        except Exception as e:
            logger.exception("[Estimate] Unexpected error generating estimate for '%s'", title)
            return EstimateFailure(error=ESTIMATION_FAILED, message=str(e) or "Failed to generate estimate")

        prompt_tokens = decomposition.token_usage.prompt_tokens + estimation.token_usage.prompt_tokens
        completion_tokens = decomposition.token_usage.completion_tokens + estimation.token_usage.completion_tokens
        elapsed_ms = int((time.monotonic() - started) * 1000)

        result = EstimateResult(
            total_hours=estimation.output.total_hours,
            confidence=estimation.output.confidence,
            confidence_reasoning=estimation.output.confidence_reasoning,
            breakdown=join_breakdown(decomposition.output.tasks, estimation.output.estimates),
            assumptions=decomposition.output.assumptions,
            risks=decomposition.output.risks,
            metadata=EstimateMetadata(
                model=estimation.model or self.model,
                tokens=TokenTotals(
                    prompt=prompt_tokens,
                    completion=completion_tokens,
                    total=prompt_tokens + completion_tokens,
                ),
                cost_usd=decomposition.cost_usd + estimation.cost_usd,
                execution_time_ms=elapsed_ms,
                user_id=user_id,
                project_id=project_id,
            ),
        )
        logger.info(
            "[Estimate] '%s': %.1fh (%s confidence, %d tasks, $%.4f)",
            title, result.total_hours, result.confidence.value, len(result.breakdown), result.metadata.cost_usd,
        )
        return result
