"""Planner agent tests."""

import json

import pytest

from src.domain.entities.run_state import NextStep, Strategy
from src.domain.entities.task import SubtaskType, Task
from src.domain.services.classification import TaskType
from src.infrastructure.agents.planner import (
    DECOMPOSE,
    classification_update,
    classify_task,
    planner_node,
)
from tests.fakes import ScriptedModelClient


@pytest.mark.asyncio
async def test_classify_uses_single_generate_call():
    llm = ScriptedModelClient(generations=["executeAnalysisTask"])
    task_type = await classify_task(Task(query="analyze this function"), llm, "planner-model")
    assert task_type is TaskType.ANALYSIS
    assert len(llm.generate_calls) == 1
    assert llm.generate_calls[0]["model"] == "planner-model"
    assert "analyze this function" in llm.generate_calls[0]["messages"][1].content


@pytest.mark.asyncio
async def test_unrecognized_token_routes_to_end():
    llm = ScriptedModelClient(generations=["let me think about it"])
    update = await planner_node({"task": Task(query="hello")}, llm, "m")
    assert update["next_step"] == NextStep.END
    assert update["subtasks"] == []
    assert "error" not in update


def test_analysis_with_generation_sets_flag_and_routes_to_analysis():
    update = classification_update(Task(query="add error handling"), TaskType.ANALYSIS_WITH_GENERATION)
    assert update["task"].requires_generation is True
    assert update["next_step"] == NextStep.ANALYSIS
    assert update["current_subtask"].type is SubtaskType.ANALYSIS
    assert update["strategy"] == Strategy.PIPELINE


def test_generation_only_routes_to_generation():
    update = classification_update(Task(query="write a parser"), TaskType.GENERATION)
    assert update["next_step"] == NextStep.GENERATION
    assert update["current_subtask"].id == "generation"
    assert "task" not in update


@pytest.mark.asyncio
async def test_decompose_mode_returns_dependency_plan():
    plan = {
        "plan": "two steps",
        "subTasks": [
            {"id": "a", "type": "analysis", "description": "look", "task": "read", "dependsOn": []},
            {"id": "b", "type": "test", "description": "check", "task": "run tests", "dependsOn": ["a"]},
        ],
    }
    llm = ScriptedModelClient(generations=[f"```json\n{json.dumps(plan)}\n```"])
    update = await planner_node({"task": Task(query="check app")}, llm, "m", mode=DECOMPOSE)
    assert update["strategy"] == Strategy.DEPENDENCY
    assert update["next_step"] == NextStep.SELECT_NEXT
    assert update["plan"] == "two steps"
    assert [s.id for s in update["subtasks"]] == ["a", "b"]


@pytest.mark.asyncio
async def test_decompose_parse_failure_is_terminal_with_message():
    llm = ScriptedModelClient(generations=["no json here"])
    update = await planner_node({"task": Task(query="x")}, llm, "m", mode=DECOMPOSE)
    assert update["next_step"] == NextStep.END
    assert update["error"].startswith("Planning failed")
    assert "execution plan" in update["final_result"]


@pytest.mark.asyncio
async def test_model_error_does_not_raise():
    llm = ScriptedModelClient(generations=[RuntimeError("server exploded")])
    update = await planner_node({"task": Task(query="x")}, llm, "m")
    assert update["next_step"] == NextStep.END
    assert "server exploded" in update["error"]
    assert update["final_result"]
