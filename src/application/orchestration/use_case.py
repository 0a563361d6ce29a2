"""Orchestrator use case - runs the orchestration graph for one query at a time."""

import asyncio
import uuid
from collections.abc import AsyncIterator, Callable

import structlog

from src.application.orchestration.dto import (
    ExecutionResult,
    OrchestrateRequest,
    ProgressEvent,
)
from src.domain.entities.progress_events import ProgressEventType
from src.domain.entities.run_state import RunState
from src.domain.entities.task import Task
from src.domain.ports.config import ModelConfig, OrchestratorConfig
from src.domain.ports.llm import ModelClientPort
from src.domain.ports.workspace import WorkspacePort
from src.infrastructure.tools import ToolInvoker, ToolRegistry, build_default_registry
from src.infrastructure.workflow import (
    CancellationToken,
    build_orchestration_graph,
    compile_orchestration_graph,
    recursion_limit_for,
)
from src.shared.logging import run_context

logger = structlog.get_logger()

ACCEPT_PREFIX = "Accept changes for file:"
REJECT_PREFIX = "Reject changes for file:"

BUSY_ERROR = "Another task is already being executed"
EMPTY_QUERY_ERROR = "Empty or invalid query provided"
IRRELEVANT_RESPONSE = (
    "I can only help with software development tasks in this workspace: "
    "analysing code, writing or changing code, and testing it."
)

ProgressListener = Callable[[ProgressEvent], None]


class OrchestratorUseCase:
    """Single entry point for running tasks.

    One run at a time: a second execute() while a run is active is rejected,
    not queued. Pending-change commands bypass that guard.
    """

    def __init__(
        self,
        llm: ModelClientPort,
        workspace: WorkspacePort,
        models: ModelConfig | None = None,
        settings: OrchestratorConfig | None = None,
        registry: ToolRegistry | None = None,
    ) -> None:
        self._llm = llm
        self._workspace = workspace
        self._models = models or ModelConfig()
        self._settings = settings or OrchestratorConfig()
        self._invoker = ToolInvoker(registry or build_default_registry(workspace))
        self._is_executing = False
        self._cancellation: CancellationToken | None = None
        self._listeners: list[ProgressListener] = []

    @property
    def is_executing(self) -> bool:
        return self._is_executing

    def on_progress(self, callback: ProgressListener) -> Callable[[], None]:
        """Subscribe to progress events. Returns the unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def cancel(self) -> bool:
        """Request cancellation of the active run. False when nothing is running."""
        if self._cancellation is None:
            return False
        self._cancellation.cancel()
        logger.info("run_cancel_requested")
        return True

    def _emit(
        self,
        event_type: str,
        message: str,
        on_event: ProgressListener | None = None,
    ) -> None:
        event = ProgressEvent(event_type=event_type, message=message)
        for listener in [*self._listeners, *([on_event] if on_event else [])]:
            try:
                listener(event)
            except Exception:
                logger.warning("progress_listener_failed", exc_info=True)

    async def execute(
        self,
        request: OrchestrateRequest,
        on_event: ProgressListener | None = None,
    ) -> ExecutionResult:
        """Run the graph for one query and return the final response."""
        query = (request.query or "").strip()

        if query.startswith(ACCEPT_PREFIX) or query.startswith(REJECT_PREFIX):
            return await self._handle_file_change(query, on_event)

        if self._is_executing:
            return ExecutionResult(success=False, error=BUSY_ERROR)
        if not query:
            logger.info("run_rejected", reason="empty_query")
            return ExecutionResult(success=False, error=EMPTY_QUERY_ERROR)
        if self._llm.configuration_error:
            logger.warning("run_rejected", reason="configuration", error=self._llm.configuration_error)
            return ExecutionResult(success=False, error=self._llm.configuration_error)

        run_id = str(uuid.uuid4())
        self._is_executing = True
        self._cancellation = CancellationToken()
        try:
            with run_context(run_id):
                return await self._run_graph(run_id, query, request.context, on_event)
        finally:
            self._is_executing = False
            self._cancellation = None

    async def _run_graph(
        self,
        run_id: str,
        query: str,
        context: str | None,
        on_event: ProgressListener | None,
    ) -> ExecutionResult:
        try:
            logger.info("run_started", query_len=len(query), strategy=self._settings.planner_strategy)
            self._emit(ProgressEventType.PROGRESS.value, "Analyzing task...", on_event)
            builder = build_orchestration_graph(
                self._llm,
                self._invoker,
                self._models,
                settings=self._settings,
                cancellation=self._cancellation,
                on_progress=lambda event_type, message: self._emit(event_type, message, on_event),
            )
            graph = compile_orchestration_graph(builder)
            initial: RunState = {
                "task": Task(query=query, context=context),
                "run_id": run_id,
                "results": {},
            }
            config = {"recursion_limit": recursion_limit_for(self._settings.max_subtasks)}
            final = await graph.ainvoke(initial, config=config)
            result = self._state_to_result(run_id, final)
            logger.info("run_finished", success=result.success, results=len(result.results or {}))
            return result
        except Exception as e:
            logger.error("run_failed", error=str(e), exc_info=True)
            return ExecutionResult(success=False, error=f"Error executing task: {e}", run_id=run_id)

    @staticmethod
    def _state_to_result(run_id: str, state: RunState) -> ExecutionResult:
        """Map final run state to result. Irrelevant queries end with no result."""
        error = state.get("error")
        response = state.get("final_result")
        results = state.get("results") or {}
        if not error and not response and not results:
            response = IRRELEVANT_RESPONSE
        return ExecutionResult(
            success=error is None,
            response=response,
            error=error,
            run_id=run_id,
            results=results,
        )

    async def _handle_file_change(
        self,
        command: str,
        on_event: ProgressListener | None = None,
    ) -> ExecutionResult:
        """Accept or reject a pending change through the workspace."""
        is_accept = command.startswith(ACCEPT_PREFIX)
        file_path = command[len(ACCEPT_PREFIX if is_accept else REJECT_PREFIX) :].strip()
        verb = "Accepting" if is_accept else "Rejecting"
        self._emit(ProgressEventType.PROGRESS.value, f"{verb} changes for file: {file_path}...", on_event)
        if not file_path:
            return ExecutionResult(success=False, error="No file path provided")
        if is_accept:
            outcome = await self._workspace.accept_change(file_path)
        else:
            outcome = self._workspace.reject_change(file_path)
        logger.info("file_change_command", accept=is_accept, file_path=file_path, success=outcome.success)
        if not outcome.success:
            return ExecutionResult(success=False, error=outcome.error)
        action = "applied to" if is_accept else "rejected for"
        return ExecutionResult(success=True, response=f"Changes were successfully {action} {file_path}.")

    async def execute_stream(self, request: OrchestrateRequest) -> AsyncIterator[ProgressEvent]:
        """Run the task, yielding progress events and a final done event."""
        queue: asyncio.Queue[ProgressEvent] = asyncio.Queue()

        async def run() -> None:
            result = await self.execute(request, on_event=queue.put_nowait)
            if not result.success:
                queue.put_nowait(ProgressEvent(event_type=ProgressEventType.ERROR.value, message=result.error))
            queue.put_nowait(
                ProgressEvent(
                    event_type=ProgressEventType.DONE.value,
                    message=result.response,
                    payload=result.model_dump(),
                )
            )

        task = asyncio.create_task(run())
        try:
            while True:
                event = await queue.get()
                yield event
                if event.event_type == ProgressEventType.DONE.value:
                    break
        finally:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
