"""LangGraph orchestration - init → plan → workers → synthesize.

Two routing strategies share one graph:
- pipeline: the planner returned a classification token. Analysis may chain
  into generation; generation always goes to test; test goes to synthesis.
- dependency: the planner returned a subtask list. select_next picks the
  next eligible subtask until none remain.
"""

from collections.abc import Callable

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, START, StateGraph

from src.domain.entities.run_state import NextStep, RunState, Strategy
from src.domain.entities.task import SubTask, SubtaskType, ToolCall, WorkerResult
from src.domain.ports.config import ModelConfig, OrchestratorConfig
from src.domain.ports.llm import ModelClientPort
from src.domain.services.followup_detector import FollowupDetector
from src.domain.services.scheduler import select_next
from src.infrastructure.agents.executor import NO_SUBTASK_ERROR, SubtaskExecutor
from src.infrastructure.agents.planner import planner_node
from src.infrastructure.agents.synthesizer import synthesize
from src.infrastructure.tools import ToolInvoker
from src.infrastructure.workflow.cancellation import CancellationToken

ProgressCallback = Callable[[str, str], None]

CANCELLED_RESULT = "Task was cancelled."


def _route_after_plan(state: RunState) -> str:
    return state.get("next_step", NextStep.END)


def _route_after_select(state: RunState) -> str:
    return state.get("next_step", NextStep.SYNTHESIZE)


def _route_after_analysis(state: RunState) -> str:
    """Analysis → generation when requested, else synthesis (or back to the scheduler)."""
    step = state.get("next_step")
    if step in (NextStep.END, NextStep.SYNTHESIZE) and state.get("error"):
        return step
    if state.get("strategy") == Strategy.DEPENDENCY:
        return NextStep.SELECT_NEXT
    if step == NextStep.GENERATION:
        return NextStep.GENERATION
    return NextStep.SYNTHESIZE


def _fixed_edge(pipeline_target: str) -> Callable[[RunState], str]:
    """Unconditional edge per strategy. Only cancellation or a missing subtask leaves it."""

    def route(state: RunState) -> str:
        step = state.get("next_step")
        if step in (NextStep.END, NextStep.SYNTHESIZE) and state.get("error"):
            return step
        if state.get("strategy") == Strategy.DEPENDENCY:
            return NextStep.SELECT_NEXT
        return pipeline_target

    return route


def recursion_limit_for(subtask_count: int) -> int:
    """Each subtask takes two graph steps (select + run) in the dependency path."""
    return max(25, 10 + 3 * subtask_count)


def build_orchestration_graph(
    llm: ModelClientPort,
    invoker: ToolInvoker,
    models: ModelConfig,
    settings: OrchestratorConfig | None = None,
    cancellation: CancellationToken | None = None,
    on_progress: ProgressCallback | None = None,
) -> StateGraph:
    """Build orchestration graph with injected dependencies."""
    settings = settings or OrchestratorConfig()
    cancellation = cancellation or CancellationToken()
    followup = FollowupDetector() if settings.keyword_followup else None

    def emit(event_type: str, message: str) -> None:
        if on_progress:
            on_progress(event_type, message)

    def on_tool(call: ToolCall) -> None:
        emit("tool", f"Tool: {call.name}")

    executor = SubtaskExecutor(
        llm,
        invoker,
        models,
        max_tool_rounds=settings.max_tool_rounds,
        temperature=settings.temperature,
        cancellation=cancellation,
        on_tool=on_tool,
    )

    def guarded(name: str, node: Callable) -> Callable:
        """Cancellation check and progress event before every node."""

        async def wrapper(state: RunState) -> RunState:
            if cancellation.cancelled:
                return {"error": "Run cancelled by user", "final_result": CANCELLED_RESULT, "next_step": NextStep.END}
            emit("node", f"Executing: {name}...")
            return await node(state)

        return wrapper

    def record(subtask: SubTask | None, result: WorkerResult) -> RunState:
        if subtask is None:
            return {"error": result.error or NO_SUBTASK_ERROR, "next_step": NextStep.SYNTHESIZE}
        update: RunState = {"results": {subtask.id: result}}
        if not result.success and result.error == "Run cancelled by user":
            update.update(error=result.error, final_result=CANCELLED_RESULT, next_step=NextStep.END)
        return update

    async def init_node(state: RunState) -> RunState:
        """Reset per-run fields; the task itself is supplied by the caller."""
        return {
            "plan": None,
            "subtasks": [],
            "current_subtask": None,
            "next_step": NextStep.PLAN,
        }

    async def plan_node(state: RunState) -> RunState:
        return await planner_node(
            state,
            llm,
            models.for_role("planner"),
            mode=settings.planner_strategy,
            max_subtasks=settings.max_subtasks,
        )

    async def select_next_node(state: RunState) -> RunState:
        selection = select_next(state.get("subtasks") or [], state.get("results") or {})
        if selection.error:
            return {"error": selection.error, "current_subtask": None, "next_step": NextStep.SYNTHESIZE}
        if selection.done:
            return {"current_subtask": None, "next_step": NextStep.SYNTHESIZE}
        subtask = selection.subtask
        return {"current_subtask": subtask, "next_step": subtask.type.value}

    async def analysis_node(state: RunState) -> RunState:
        subtask = state.get("current_subtask")
        result = await executor.run(subtask)
        update = record(subtask, result)
        if "next_step" in update:
            return update
        if state.get("strategy") == Strategy.DEPENDENCY:
            return {**update, "next_step": NextStep.SELECT_NEXT}

        task = state["task"]
        wants_generation = task.requires_generation or (
            followup is not None and followup.needs_generation(task.query)
        )
        if not wants_generation:
            return {**update, "next_step": NextStep.SYNTHESIZE}

        context = f"Analysis results:\n{result.result}\n\n" if result.success and result.result else ""
        generation = SubTask(
            id="generation",
            type=SubtaskType.GENERATION,
            description="Generate code based on analysis",
            task=task.query,
            context=f"{context}Original task: {task.query}",
        )
        return {
            **update,
            "subtasks": [*(state.get("subtasks") or []), generation],
            "current_subtask": generation,
            "next_step": NextStep.GENERATION,
        }

    async def generation_node(state: RunState) -> RunState:
        subtask = state.get("current_subtask")
        result = await executor.run(subtask)
        update = record(subtask, result)
        if "next_step" in update:
            return update
        if state.get("strategy") == Strategy.DEPENDENCY:
            return {**update, "next_step": NextStep.SELECT_NEXT}

        task = state["task"]
        generated = result.result if result.success else f"(generation failed: {result.error})"
        test = SubTask(
            id="test",
            type=SubtaskType.TEST,
            description="Test generated code",
            task="Write and run tests for the generated code.",
            context=f"Generated code:\n{generated}\n\nOriginal task: {task.query}",
        )
        return {
            **update,
            "subtasks": [*(state.get("subtasks") or []), test],
            "current_subtask": test,
            "next_step": NextStep.TEST,
        }

    async def test_node(state: RunState) -> RunState:
        subtask = state.get("current_subtask")
        update = record(subtask, await executor.run(subtask))
        if "next_step" in update:
            return update
        if state.get("strategy") == Strategy.DEPENDENCY:
            return {**update, "next_step": NextStep.SELECT_NEXT}
        return {**update, "next_step": NextStep.SYNTHESIZE}

    async def synthesize_node(state: RunState) -> RunState:
        synthesis = await synthesize(
            state["task"],
            state.get("results") or {},
            llm,
            models.for_role("synthesis"),
            subtasks=state.get("subtasks"),
            run_error=state.get("error"),
        )
        update: RunState = {"final_result": synthesis.final_result, "next_step": NextStep.END}
        if synthesis.error:
            update["error"] = synthesis.error
        return update

    builder = StateGraph(RunState)
    builder.add_node(NextStep.INIT, guarded(NextStep.INIT, init_node))
    builder.add_node(NextStep.PLAN, guarded(NextStep.PLAN, plan_node))
    builder.add_node(NextStep.SELECT_NEXT, guarded(NextStep.SELECT_NEXT, select_next_node))
    builder.add_node(NextStep.ANALYSIS, guarded(NextStep.ANALYSIS, analysis_node))
    builder.add_node(NextStep.GENERATION, guarded(NextStep.GENERATION, generation_node))
    builder.add_node(NextStep.TEST, guarded(NextStep.TEST, test_node))
    builder.add_node(NextStep.SYNTHESIZE, guarded(NextStep.SYNTHESIZE, synthesize_node))

    builder.add_edge(START, NextStep.INIT)
    builder.add_conditional_edges(
        NextStep.INIT,
        lambda state: NextStep.END if state.get("next_step") == NextStep.END else NextStep.PLAN,
        path_map={NextStep.PLAN: NextStep.PLAN, NextStep.END: END},
    )
    builder.add_conditional_edges(
        NextStep.PLAN,
        _route_after_plan,
        path_map={
            NextStep.ANALYSIS: NextStep.ANALYSIS,
            NextStep.GENERATION: NextStep.GENERATION,
            NextStep.SELECT_NEXT: NextStep.SELECT_NEXT,
            NextStep.END: END,
        },
    )
    builder.add_conditional_edges(
        NextStep.SELECT_NEXT,
        _route_after_select,
        path_map={
            NextStep.ANALYSIS: NextStep.ANALYSIS,
            NextStep.GENERATION: NextStep.GENERATION,
            NextStep.TEST: NextStep.TEST,
            NextStep.SYNTHESIZE: NextStep.SYNTHESIZE,
            NextStep.END: END,
        },
    )
    builder.add_conditional_edges(
        NextStep.ANALYSIS,
        _route_after_analysis,
        path_map={
            NextStep.GENERATION: NextStep.GENERATION,
            NextStep.SELECT_NEXT: NextStep.SELECT_NEXT,
            NextStep.SYNTHESIZE: NextStep.SYNTHESIZE,
            NextStep.END: END,
        },
    )
    builder.add_conditional_edges(
        NextStep.GENERATION,
        _fixed_edge(NextStep.TEST),
        path_map={
            NextStep.TEST: NextStep.TEST,
            NextStep.SELECT_NEXT: NextStep.SELECT_NEXT,
            NextStep.SYNTHESIZE: NextStep.SYNTHESIZE,
            NextStep.END: END,
        },
    )
    builder.add_conditional_edges(
        NextStep.TEST,
        _fixed_edge(NextStep.SYNTHESIZE),
        path_map={
            NextStep.SYNTHESIZE: NextStep.SYNTHESIZE,
            NextStep.SELECT_NEXT: NextStep.SELECT_NEXT,
            NextStep.END: END,
        },
    )
    builder.add_edge(NextStep.SYNTHESIZE, END)

    return builder


def compile_orchestration_graph(
    builder: StateGraph,
    *,
    checkpointer: MemorySaver | None = None,
):
    """Compile graph. Runs are not persisted, so no checkpointer unless one is passed."""
    return builder.compile(checkpointer=checkpointer)
