"""Run state schema for the LangGraph orchestration graph."""

from typing import Annotated, TypedDict

from src.domain.entities.task import SubTask, Task, WorkerResult


class NextStep:
    """Routing tokens. next_step always holds one of these."""

    INIT = "init"
    PLAN = "planner"
    SELECT_NEXT = "select_next"
    ANALYSIS = "analysis"
    GENERATION = "generation"
    TEST = "test"
    SYNTHESIZE = "synthesize"
    END = "end"


class Strategy:
    """Routing strategy chosen by what the planner returned."""

    PIPELINE = "pipeline"  # classification token, fixed analysis -> generation -> test
    DEPENDENCY = "dependency"  # full subtask list scheduled by depends_on


def merge_results(
    current: dict[str, WorkerResult],
    update: dict[str, WorkerResult],
) -> dict[str, WorkerResult]:
    """Grow-only merge: a recorded result is never overwritten."""
    merged = dict(current or {})
    for key, value in (update or {}).items():
        merged.setdefault(key, value)
    return merged


def keep_first_error(current: str | None, update: str | None) -> str | None:
    """Sticky error: the first error set survives the rest of the run."""
    return current or update


class RunState(TypedDict, total=False):
    """State threaded through one run. All fields optional for incremental build."""

    # Input
    task: Task
    run_id: str

    # Planning
    strategy: str
    plan: str | None
    subtasks: list[SubTask]

    # Execution
    current_subtask: SubTask | None
    results: Annotated[dict[str, WorkerResult], merge_results]

    # Output
    final_result: str
    next_step: str
    error: Annotated[str | None, keep_first_error]
