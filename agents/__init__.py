"""LLM agents for the two-phase effort estimate."""

from .base_agent import BaseAgent, AgentResult, TokenUsage
from .decomposer_agent import TaskDecomposerAgent
from .estimator_agent import TaskEstimatorAgent

__all__ = [
    "BaseAgent",
    "AgentResult",
    "TokenUsage",
    "TaskDecomposerAgent",
    "TaskEstimatorAgent",
]
