"""Dependency scheduler unit tests."""

from src.domain.entities.task import SubTask, SubtaskType, WorkerResult
from src.domain.services.scheduler import (
    CYCLE_ERROR,
    build_dependency_context,
    is_eligible,
    pending_subtasks,
    select_next,
)


def _sub(id_: str, depends_on=(), context=None, type_=SubtaskType.ANALYSIS) -> SubTask:
    return SubTask(id=id_, type=type_, task=f"do {id_}", depends_on=list(depends_on), context=context)


def test_no_dependencies_is_immediately_eligible():
    subtasks = [_sub("a"), _sub("b")]
    selection = select_next(subtasks, {})
    assert selection.subtask is not None
    assert selection.subtask.id == "a"
    assert is_eligible(subtasks[1], {})


def test_picks_first_eligible_in_plan_order():
    subtasks = [_sub("a", ["c"]), _sub("b"), _sub("c")]
    selection = select_next(subtasks, {})
    assert selection.subtask.id == "b"


def test_never_selects_subtask_with_unrecorded_dependency():
    subtasks = [_sub("a"), _sub("b", ["a"]), _sub("c", ["b"])]
    results = {"a": WorkerResult(success=True, result="A")}
    for _ in range(3):
        selection = select_next(subtasks, results)
        if selection.subtask is None:
            break
        assert all(dep in results for dep in selection.subtask.depends_on)
        results[selection.subtask.id] = WorkerResult(success=True, result=selection.subtask.id)
    assert set(results) == {"a", "b", "c"}


def test_failed_dependency_still_counts_as_recorded():
    subtasks = [_sub("a"), _sub("b", ["a"])]
    results = {"a": WorkerResult.failure("boom")}
    selection = select_next(subtasks, results)
    assert selection.subtask.id == "b"
    # Failed results contribute nothing to context
    assert selection.subtask.context is None


def test_context_concatenates_successful_dependencies_then_own_context():
    subtask = _sub("c", ["a", "b"], context="Extra notes")
    results = {
        "a": WorkerResult(success=True, result="first"),
        "b": WorkerResult(success=True, result="second"),
    }
    context = build_dependency_context(subtask, results)
    assert context == "Result from a:\nfirst\n\nResult from b:\nsecond\n\nExtra notes"


def test_selected_subtask_carries_context_without_mutating_plan():
    subtasks = [_sub("a"), _sub("b", ["a"])]
    results = {"a": WorkerResult(success=True, result="found it")}
    selection = select_next(subtasks, results)
    assert selection.subtask.context == "Result from a:\nfound it\n\n"
    assert subtasks[1].context is None


def test_all_done_returns_done_selection():
    subtasks = [_sub("a")]
    selection = select_next(subtasks, {"a": WorkerResult(success=True, result="x")})
    assert selection.done
    assert selection.error is None


def test_mutual_dependency_reports_cycle():
    subtasks = [_sub("a", ["b"]), _sub("b", ["a"])]
    selection = select_next(subtasks, {})
    assert selection.subtask is None
    assert selection.error == CYCLE_ERROR
    assert not selection.done


def test_pending_subtasks_excludes_recorded():
    subtasks = [_sub("a"), _sub("b")]
    pending = pending_subtasks(subtasks, {"a": WorkerResult.failure("x")})
    assert [s.id for s in pending] == ["b"]
