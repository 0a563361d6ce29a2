"""Dependency scheduling over a planned subtask list."""

from dataclasses import dataclass

from src.domain.entities.task import SubTask, WorkerResult

CYCLE_ERROR = "No eligible subtasks to execute. There may be a dependency cycle."


@dataclass(frozen=True)
class Selection:
    """Outcome of one select_next scan.

    subtask is set when something is eligible. error is set when pending
    subtasks remain but none can run. Both None means everything is done.
    """

    subtask: SubTask | None = None
    error: str | None = None

    @property
    def done(self) -> bool:
        return self.subtask is None and self.error is None


def pending_subtasks(
    subtasks: list[SubTask],
    results: dict[str, WorkerResult],
) -> list[SubTask]:
    """Subtasks without a recorded result, in plan order."""
    return [s for s in subtasks if s.id not in results]


def is_eligible(subtask: SubTask, results: dict[str, WorkerResult]) -> bool:
    """All dependencies have a recorded result (success or failure)."""
    return all(dep in results for dep in subtask.depends_on)


def build_dependency_context(subtask: SubTask, results: dict[str, WorkerResult]) -> str | None:
    """Concatenate successful dependency results, then the subtask's own context."""
    context = ""
    for dep_id in subtask.depends_on:
        dep = results.get(dep_id)
        if dep is not None and dep.success and dep.result:
            context += f"Result from {dep_id}:\n{dep.result}\n\n"
    if subtask.context:
        context += subtask.context
    return context or None


def select_next(
    subtasks: list[SubTask],
    results: dict[str, WorkerResult],
) -> Selection:
    """Pick the first eligible pending subtask in plan order, with context attached."""
    pending = pending_subtasks(subtasks, results)
    if not pending:
        return Selection()
    for subtask in pending:
        if is_eligible(subtask, results):
            return Selection(subtask=subtask.with_context(build_dependency_context(subtask, results)))
    return Selection(error=CYCLE_ERROR)
