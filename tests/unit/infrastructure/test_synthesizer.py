"""Synthesizer tests: zero, one and many results."""

import pytest

from src.domain.entities.task import SubTask, SubtaskType, Task, WorkerResult
from src.infrastructure.agents.synthesizer import (
    EMPTY_SYNTHESIS,
    NOTHING_TO_SYNTHESIZE,
    build_sections,
    strip_heading,
    synthesize,
)
from tests.fakes import ScriptedModelClient

TASK = Task(query="add error handling and write tests")


@pytest.mark.asyncio
async def test_zero_results_no_model_call():
    llm = ScriptedModelClient()
    synthesis = await synthesize(TASK, {}, llm, "m")
    assert synthesis.final_result == NOTHING_TO_SYNTHESIZE
    assert synthesis.error is None
    assert llm.generate_calls == []


@pytest.mark.asyncio
async def test_only_failures_is_nothing_to_synthesize():
    llm = ScriptedModelClient()
    results = {"analysis": WorkerResult.failure("model offline"), "test": WorkerResult.failure("boom")}
    synthesis = await synthesize(TASK, results, llm, "m")
    assert synthesis.final_result == NOTHING_TO_SYNTHESIZE
    assert synthesis.error is None
    assert llm.generate_calls == []


@pytest.mark.asyncio
async def test_run_error_reported_without_model_call():
    synthesis = await synthesize(TASK, {}, ScriptedModelClient(), "m", run_error="cycle detected")
    assert synthesis.final_result == "Could not complete the task: cycle detected"


@pytest.mark.asyncio
async def test_single_result_short_circuits_and_strips_heading():
    llm = ScriptedModelClient()
    results = {
        "analysis": WorkerResult(success=True, result="## Analysis\n\nThe function adds numbers."),
        "generation": WorkerResult.failure("declined"),
    }
    synthesis = await synthesize(TASK, results, llm, "m")
    assert synthesis.final_result == "The function adds numbers."
    assert not synthesis.model_called
    assert llm.generate_calls == []


@pytest.mark.asyncio
async def test_single_result_without_heading_unchanged():
    results = {"analysis": WorkerResult(success=True, result="Plain answer\n\nwith paragraphs")}
    synthesis = await synthesize(TASK, results, ScriptedModelClient(), "m")
    assert synthesis.final_result == "Plain answer\n\nwith paragraphs"


@pytest.mark.asyncio
async def test_multiple_results_one_model_call_with_sections():
    llm = ScriptedModelClient(generations=["Unified answer"])
    subtasks = [
        SubTask(id="analysis", type=SubtaskType.ANALYSIS, description="Analyse code", task="x"),
        SubTask(id="test", type=SubtaskType.TEST, task="y"),
    ]
    results = {
        "analysis": WorkerResult(success=True, result="Found issues"),
        "test": WorkerResult(success=True, result="Tests pass"),
    }
    synthesis = await synthesize(TASK, results, llm, "synthesis-model", subtasks=subtasks)
    assert synthesis.final_result == "Unified answer"
    assert synthesis.model_called
    assert len(llm.generate_calls) == 1
    call = llm.generate_calls[0]
    assert call["model"] == "synthesis-model"
    prompt = call["messages"][1].content
    assert "Original request: add error handling and write tests" in prompt
    assert "## Analyse code\n\nFound issues\n" in prompt
    assert "## Testing\n\nTests pass\n" in prompt
    assert "\n---\n\n" in prompt


@pytest.mark.asyncio
async def test_empty_synthesis_is_failure():
    llm = ScriptedModelClient(generations=["   "])
    results = {
        "a": WorkerResult(success=True, result="one"),
        "b": WorkerResult(success=True, result="two"),
    }
    synthesis = await synthesize(TASK, results, llm, "m")
    assert synthesis.error
    assert synthesis.final_result == EMPTY_SYNTHESIS


@pytest.mark.asyncio
async def test_synthesis_model_error_is_captured():
    llm = ScriptedModelClient(generations=[RuntimeError("502")])
    results = {
        "a": WorkerResult(success=True, result="one"),
        "b": WorkerResult(success=True, result="two"),
    }
    synthesis = await synthesize(TASK, results, llm, "m")
    assert synthesis.final_result.startswith("Failed to synthesize results")
    assert "502" in synthesis.error


@pytest.mark.asyncio
async def test_same_results_same_outcome_class():
    results = {"a": WorkerResult(success=True, result="only")}
    first = await synthesize(TASK, results, ScriptedModelClient(), "m")
    second = await synthesize(TASK, results, ScriptedModelClient(), "m")
    assert first == second


def test_sections_skip_failed_and_empty_results():
    results = {
        "a": WorkerResult(success=True, result="text"),
        "b": WorkerResult(success=True, result="  "),
        "c": WorkerResult.failure("x"),
    }
    assert build_sections(results) == ["## a\n\ntext\n"]


def test_strip_heading_only_leading():
    assert strip_heading("## Title\n\nBody\n\n## Later\n\nMore") == "Body\n\n## Later\n\nMore"
    assert strip_heading("No heading") == "No heading"
