"""Tests for EstimateOrchestrator: input gates, phase sequencing and failures."""

import pytest
from unittest.mock import MagicMock

from contracts import (
    Complexity,
    Confidence,
    DecomposedTask,
    EstimateFailure,
    EstimateResult,
    ItemKind,
    TaskEstimate,
)
from errors import InvalidInput
from orchestrator import EstimateOrchestrator, join_breakdown
from conftest import (
    DEFAULT_HOURS,
    DEFAULT_TASKS,
    ScriptedProvider,
    decomposition_json,
    estimation_json,
)

DESCRIPTION = "Customers need to request partial refunds through the public API"


class TestInputGates:
    """Gates run before any provider call."""

    def test_short_title_raises_invalid_input(self, scripted_provider):
        orchestrator = EstimateOrchestrator(llm_provider=scripted_provider)
        with pytest.raises(InvalidInput):
            orchestrator.generate_effort_estimate("fix", DESCRIPTION)
        assert scripted_provider.calls == []

    def test_whitespace_padded_title_is_measured_stripped(self, scripted_provider):
        orchestrator = EstimateOrchestrator(llm_provider=scripted_provider)
        with pytest.raises(InvalidInput):
            orchestrator.generate_effort_estimate("  ab  ", DESCRIPTION)

    def test_thin_description_is_soft_failure(self, scripted_provider):
        orchestrator = EstimateOrchestrator(llm_provider=scripted_provider)

        result = orchestrator.generate_effort_estimate("Fix bug", "ok")

        assert isinstance(result, EstimateFailure)
        assert result.success is False
        assert result.error == "insufficient_description"
        assert result.confidence == Confidence.LOW
        assert scripted_provider.calls == []

    def test_missing_description_is_soft_failure(self, scripted_provider):
        orchestrator = EstimateOrchestrator(llm_provider=scripted_provider)
        result = orchestrator.generate_effort_estimate("Fix login bug", None)
        assert result.error == "insufficient_description"

    def test_thresholds_are_injectable(self, happy_provider):
        orchestrator = EstimateOrchestrator(
            llm_provider=happy_provider, min_title_length=2, min_description_length=2
        )
        assert orchestrator.generate_effort_estimate("ab", "ok").success is True


class TestGenerateEffortEstimate:
    """Successful two-phase estimates."""

    def test_success_shape(self, happy_provider):
        orchestrator = EstimateOrchestrator(llm_provider=happy_provider)

        result = orchestrator.generate_effort_estimate(
            "Add refund endpoint", DESCRIPTION, ItemKind.ISSUE, user_id=7, project_id=3
        )

        assert isinstance(result, EstimateResult)
        assert result.total_hours == 20.8
        assert result.confidence == Confidence.MEDIUM
        assert result.confidence_reasoning == "Familiar stack"
        assert [b.task for b in result.breakdown] == [t for t, _ in DEFAULT_HOURS]
        assert result.breakdown[1].complexity == Complexity.HIGH
        assert result.breakdown[1].category == "backend"
        assert result.risks == ["Third-party API limits"]
        assert result.metadata.user_id == 7
        assert result.metadata.project_id == 3

    def test_tokens_and_cost_are_summed(self, happy_provider):
        result = EstimateOrchestrator(llm_provider=happy_provider).generate_effort_estimate(
            "Add refund endpoint", DESCRIPTION
        )
        tokens = result.metadata.tokens
        assert (tokens.prompt, tokens.completion, tokens.total) == (2000, 1000, 3000)
        assert result.metadata.cost_usd == pytest.approx(0.015)
        assert result.metadata.execution_time_ms >= 0

    def test_phases_run_in_order(self, happy_provider):
        EstimateOrchestrator(llm_provider=happy_provider).generate_effort_estimate(
            "Add refund endpoint", DESCRIPTION
        )
        assert len(happy_provider.calls) == 2
        assert "Decompose this issue" in happy_provider.calls[0]["user_message"]
        assert "Estimate hours for these tasks" in happy_provider.calls[1]["user_message"]

    def test_injected_agents_are_used(self):
        decomposer = MagicMock()
        estimator = MagicMock()
        decomposer.decompose.side_effect = RuntimeError("boom")
        orchestrator = EstimateOrchestrator(decomposer=decomposer, estimator=estimator)

        result = orchestrator.generate_effort_estimate("Add refund endpoint", DESCRIPTION)

        assert result.error == "estimation_failed"
        assert "boom" in result.message
        estimator.estimate.assert_not_called()


class TestPhaseFailures:
    """No exception escapes except InvalidInput."""

    def test_decomposition_failure(self):
        provider = ScriptedProvider([ConnectionError("provider down")])
        result = EstimateOrchestrator(llm_provider=provider).generate_effort_estimate(
            "Add refund endpoint", DESCRIPTION
        )
        assert result.success is False
        assert result.error == "decomposition_failed"
        assert "provider down" in result.message
        assert len(provider.calls) == 1

    def test_estimation_failure(self):
        provider = ScriptedProvider([decomposition_json(*DEFAULT_TASKS), "{not json"])
        result = EstimateOrchestrator(llm_provider=provider).generate_effort_estimate(
            "Add refund endpoint", DESCRIPTION
        )
        assert result.error == "estimation_failed"
        assert result.confidence == Confidence.LOW


class TestJoinBreakdown:
    """Task metadata is matched by name, then by position."""

    def _tasks(self):
        return [DecomposedTask(name=n, complexity=c, category=cat) for n, c, cat in DEFAULT_TASKS]

    def test_match_by_name_survives_reordering(self):
        estimates = [
            TaskEstimate(task="write tests ", hours=5),
            TaskEstimate(task="Design API contract", hours=3),
        ]
        breakdown = join_breakdown(self._tasks(), estimates)
        assert breakdown[0].category == "testing"
        assert breakdown[1].category == "design"

    def test_renamed_task_falls_back_to_position(self):
        estimates = [TaskEstimate(task="Design the API", hours=3)]
        breakdown = join_breakdown(self._tasks(), estimates)
        assert breakdown[0].task == "Design the API"
        assert breakdown[0].complexity == Complexity.LOW
        assert breakdown[0].category == "design"

    def test_duplicate_names_match_each_task_once(self):
        tasks = [
            DecomposedTask(name="Write tests", complexity="low", category="testing"),
            DecomposedTask(name="Write tests", complexity="high", category="qa"),
        ]
        estimates = [TaskEstimate(task="Write tests", hours=2), TaskEstimate(task="Write tests", hours=9)]
        breakdown = join_breakdown(tasks, estimates)
        assert [(b.complexity, b.category) for b in breakdown] == [
            (Complexity.LOW, "testing"),
            (Complexity.HIGH, "qa"),
        ]

    def test_matched_task_is_not_reused_by_position(self):
        estimates = [
            TaskEstimate(task="Implement endpoint", hours=12),
            TaskEstimate(task="Renamed design work", hours=3),
        ]
        breakdown = join_breakdown(self._tasks(), estimates)
        assert breakdown[0].category == "backend"
        # position 1 was taken by the name match above
        assert breakdown[1].complexity == Complexity.MEDIUM
        assert breakdown[1].category == "development"

    def test_extra_estimate_gets_defaults(self):
        estimates = [TaskEstimate(task=f"Task {i}", hours=1) for i in range(4)]
        breakdown = join_breakdown(self._tasks(), estimates)
        assert breakdown[3].complexity == Complexity.MEDIUM
        assert breakdown[3].category == "development"

    def test_single_round_of_rounding(self):
        provider = ScriptedProvider([
            decomposition_json(("A task", "low", "backend"), ("B task", "low", "backend")),
            estimation_json(("A task", 0.04), ("B task", 0.04)),
        ])
        result = EstimateOrchestrator(llm_provider=provider).generate_effort_estimate(
            "Tiny change", DESCRIPTION
        )
        # 0.04 + 0.04 = 0.08 -> 0.1; per-task rounding would give 0.0
        assert result.total_hours == 0.1
