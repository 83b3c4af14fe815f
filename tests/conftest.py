"""Shared fixtures: a scripted completion provider and parametrised stores."""

import json
from typing import List, Optional, Union

import pytest

from contracts import ItemKind
from providers.base import CompletionRequest, LLMProvider, LLMResponse
from store import MemoryEffortStore, SqlEffortStore


class ScriptedProvider(LLMProvider):
    """Returns queued responses in order and records every call.

    A queued exception is raised instead of returned.
    """

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None, model: str = "gpt-4o"):
        self.responses = list(responses or [])
        self.calls: List[dict] = []
        self._model = model

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def default_model(self) -> str:
        return self._model

    def queue(self, *responses: Union[str, Exception]) -> "ScriptedProvider":
        self.responses.extend(responses)
        return self

    def complete(self, request: CompletionRequest) -> LLMResponse:
        self.calls.append({
            "system_prompt": request.system_prompt,
            "user_message": request.user_prompt,
            "model": request.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "json_response": request.json_response,
            "timeout": request.timeout,
            "metadata": request.metadata,
        })
        if not self.responses:
            raise AssertionError("ScriptedProvider ran out of responses")
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return LLMResponse(
            content=response,
            prompt_tokens=1000,
            completion_tokens=500,
            model=request.model or self._model,
            provider=self.name,
        )


def decomposition_json(*tasks, assumptions=None, risks=None) -> str:
    """Decomposer reply for (name, complexity, category) tuples."""
    return json.dumps({
        "tasks": [
            {"name": name, "complexity": complexity, "category": category}
            for name, complexity, category in tasks
        ],
        "assumptions": assumptions or ["Existing auth can be reused"],
        "risks": risks or ["Third-party API limits"],
    })


def estimation_json(*estimates, confidence="medium", reasoning="Familiar stack") -> str:
    """Estimator reply for (task, hours) tuples."""
    return json.dumps({
        "estimates": [
            {"task": task, "hours": hours, "reasoning": f"{task} work"}
            for task, hours in estimates
        ],
        "confidence": confidence,
        "confidence_reasoning": reasoning,
    })


DEFAULT_TASKS = (
    ("Design API contract", "low", "design"),
    ("Implement endpoint", "high", "backend"),
    ("Write tests", "medium", "testing"),
)
DEFAULT_HOURS = (
    ("Design API contract", 3.0),
    ("Implement endpoint", 12.5),
    ("Write tests", 5.25),
)


@pytest.fixture
def scripted_provider():
    return ScriptedProvider()


@pytest.fixture
def happy_provider():
    """Provider scripted for one successful decompose + estimate round."""
    return ScriptedProvider([
        decomposition_json(*DEFAULT_TASKS),
        estimation_json(*DEFAULT_HOURS),
    ])


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    """Every store implementation behind the same interface."""
    if request.param == "memory":
        yield MemoryEffortStore()
    else:
        sql_store = SqlEffortStore("sqlite://")
        yield sql_store
        sql_store.engine.dispose()


@pytest.fixture
def project_tree(store):
    """Epic 1 -> stories 2, 3 -> task 4 under story 2.

    Base efforts: epic none, story 2 = 8, story 3 = 4, task 4 = 16.
    """
    epic = store.add_item(ItemKind.ISSUE, project_id=1, title="Checkout epic", is_epic=True)
    story_a = store.add_item(
        ItemKind.ISSUE, project_id=1, title="Payment form", parent_id=epic.id,
        estimated_hours=8, assignee="alice",
    )
    story_b = store.add_item(
        ItemKind.ISSUE, project_id=1, title="Order summary", parent_id=epic.id,
        estimated_hours=4, assignee="bob",
    )
    task = store.add_item(
        ItemKind.ISSUE, project_id=1, title="Card tokenisation", parent_id=story_a.id,
        estimated_hours=16,
    )
    return {"epic": epic, "story_a": story_a, "story_b": story_b, "task": task}
