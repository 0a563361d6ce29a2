"""Planner agent - classifies the request or decomposes it into subtasks."""

import logging

from src.domain.entities.run_state import NextStep, RunState, Strategy
from src.domain.entities.task import SubTask, SubtaskType, Task
from src.domain.ports.llm import LLMMessage, ModelClientPort
from src.domain.services.classification import TaskType, parse_task_type
from src.infrastructure.agents.llm_helpers import generate_with_retry
from src.infrastructure.agents.plan_parser import Malformed, PlanParseResult, parse_plan
from src.infrastructure.agents.prompts import CLASSIFICATION_PROMPT, DECOMPOSITION_PROMPT

logger = logging.getLogger(__name__)

CLASSIFY = "classify"
DECOMPOSE = "decompose"


def _task_prompt(task: Task, instruction: str) -> str:
    content = f"Task: {task.query}\n"
    if task.context:
        content += f"\nContext:\n{task.context}\n"
    return f"{content}\n{instruction}"


async def classify_task(
    task: Task,
    llm: ModelClientPort,
    model: str,
    temperature: float = 0.0,
) -> TaskType:
    """One model call returning one of the four classification tokens."""
    messages = [
        LLMMessage(role="system", content=CLASSIFICATION_PROMPT),
        LLMMessage(role="user", content=_task_prompt(task, "Determine the task type for this query.")),
    ]
    response = await generate_with_retry(llm, messages, model, temperature)
    task_type = parse_task_type(response.content)
    logger.info("Task type determined: %s (raw=%r)", task_type.value, response.content[:80])
    return task_type


async def decompose_task(
    task: Task,
    llm: ModelClientPort,
    model: str,
    temperature: float = 0.2,
    max_subtasks: int | None = None,
) -> PlanParseResult:
    """One model call returning a dependency-linked subtask plan."""
    messages = [
        LLMMessage(role="system", content=DECOMPOSITION_PROMPT),
        LLMMessage(
            role="user",
            content=_task_prompt(
                task,
                "Create a detailed execution plan for this task, breaking it down into appropriate subtasks.",
            ),
        ),
    ]
    response = await generate_with_retry(llm, messages, model, temperature)
    return parse_plan(response.content, max_subtasks=max_subtasks)


def classification_update(task: Task, task_type: TaskType) -> RunState:
    """Map a classification outcome to the first pipeline subtask and route."""
    if task_type is TaskType.IRRELEVANT:
        return {"strategy": Strategy.PIPELINE, "subtasks": [], "next_step": NextStep.END}

    if task_type is TaskType.GENERATION:
        subtask = SubTask(
            id="generation",
            type=SubtaskType.GENERATION,
            description="Generate code based on requirements",
            task=task.query,
            context=task.context,
        )
        return {
            "strategy": Strategy.PIPELINE,
            "subtasks": [subtask],
            "current_subtask": subtask,
            "next_step": NextStep.GENERATION,
        }

    subtask = SubTask(
        id="analysis",
        type=SubtaskType.ANALYSIS,
        description="Analyse code and provide insights",
        task=task.query,
        context=task.context,
    )
    update: RunState = {
        "strategy": Strategy.PIPELINE,
        "subtasks": [subtask],
        "current_subtask": subtask,
        "next_step": NextStep.ANALYSIS,
    }
    if task_type is TaskType.ANALYSIS_WITH_GENERATION:
        update["task"] = task.model_copy(update={"requires_generation": True})
    return update


def plan_update(result: PlanParseResult) -> RunState:
    """Map a parsed plan (or parse failure) to state. Parse failures end the run."""
    if isinstance(result, Malformed):
        logger.warning("Planning failed: %s", result.reason)
        return {
            "strategy": Strategy.DEPENDENCY,
            "error": f"Planning failed: {result.reason}",
            "final_result": f"I could not create an execution plan for this request ({result.reason}). "
            "Please rephrase the request and try again.",
            "next_step": NextStep.END,
        }
    logger.info("Plan created with %d subtasks", len(result.subtasks))
    return {
        "strategy": Strategy.DEPENDENCY,
        "plan": result.plan,
        "subtasks": result.subtasks,
        "next_step": NextStep.SELECT_NEXT,
    }


async def planner_node(
    state: RunState,
    llm: ModelClientPort,
    model: str,
    mode: str = CLASSIFY,
    max_subtasks: int | None = None,
) -> RunState:
    """Plan the run. Updates strategy, subtasks and next_step."""
    task = state["task"]
    try:
        if mode == DECOMPOSE:
            return plan_update(await decompose_task(task, llm, model, max_subtasks=max_subtasks))
        return classification_update(task, await classify_task(task, llm, model))
    except Exception as e:
        logger.warning("Planner call failed: %s", e, exc_info=True)
        return {
            "error": f"Planning failed: {e}",
            "final_result": f"Failed to plan the task: {e}",
            "next_step": NextStep.END,
        }
