"""Subtask executor - one subtask through the bounded tool-call loop."""

import json
import logging
from collections.abc import Callable

from src.domain.entities.task import SubTask, ToolCall, WorkerResult
from src.domain.ports.config import ModelConfig
from src.domain.ports.llm import LLMMessage, ModelClientPort
from src.infrastructure.agents.llm_helpers import chat_with_tools_with_retry
from src.infrastructure.agents.prompts import WORKER_PROMPTS
from src.infrastructure.tools import ToolInvoker
from src.infrastructure.workflow.cancellation import CancellationToken, RunCancelled

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOL_ROUNDS = 10
MAX_ROUNDS_ERROR = "Maximum number of tool calls exceeded. Task could not be completed."
NO_SUBTASK_ERROR = "No current subtask to execute"


class SubtaskExecutor:
    """Runs one subtask: system prompt + context + task, then the tool loop.

    Every round sends the full message list and tool schema. Tool calls in a
    turn run sequentially in the order the model returned them. Nothing raises
    out of run(); failures come back as WorkerResult(success=False).
    """

    def __init__(
        self,
        llm: ModelClientPort,
        invoker: ToolInvoker,
        models: ModelConfig,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        temperature: float = 0.3,
        cancellation: CancellationToken | None = None,
        on_tool: Callable[[ToolCall], None] | None = None,
    ) -> None:
        self._llm = llm
        self._invoker = invoker
        self._models = models
        self._max_tool_rounds = max_tool_rounds
        self._temperature = temperature
        self._cancellation = cancellation or CancellationToken()
        self._on_tool = on_tool

    @staticmethod
    def build_messages(subtask: SubTask) -> list[LLMMessage]:
        """System prompt for the subtask role, optional context, then the task."""
        messages = [LLMMessage(role="system", content=WORKER_PROMPTS[subtask.type])]
        if subtask.context:
            messages.append(LLMMessage(role="user", content=subtask.context))
        messages.append(LLMMessage(role="user", content=subtask.task))
        return messages

    async def run(self, subtask: SubTask | None) -> WorkerResult:
        if subtask is None:
            return WorkerResult.failure(NO_SUBTASK_ERROR)

        tools_used: list[str] = []
        messages = self.build_messages(subtask)
        model = self._models.for_role(subtask.type.value)
        schema = self._invoker.registry.schema()
        try:
            for round_no in range(1, self._max_tool_rounds + 1):
                self._cancellation.raise_if_cancelled()
                reply = await chat_with_tools_with_retry(
                    self._llm, messages, schema, model, self._temperature
                )
                messages.append(
                    LLMMessage(role="assistant", content=reply.content, tool_calls=reply.tool_calls)
                )
                if not reply.tool_calls:
                    logger.info(
                        "Subtask %s finished after %d round(s), tools=%s",
                        subtask.id,
                        round_no,
                        tools_used,
                    )
                    return WorkerResult(success=True, result=reply.content, tools_used=tools_used)

                for call in reply.tool_calls:
                    self._cancellation.raise_if_cancelled()
                    messages.append(await self._run_tool(call, tools_used))
        except RunCancelled as e:
            logger.info("Subtask %s cancelled", subtask.id)
            return WorkerResult.failure(str(e), tools_used)
        except Exception as e:
            logger.warning("Subtask %s failed: %s", subtask.id, e, exc_info=True)
            return WorkerResult.failure(str(e) or type(e).__name__, tools_used)

        logger.warning("Subtask %s hit the tool round cap (%d)", subtask.id, self._max_tool_rounds)
        return WorkerResult.failure(MAX_ROUNDS_ERROR, tools_used)

    async def _run_tool(self, call: ToolCall, tools_used: list[str]) -> LLMMessage:
        """Invoke one call and wrap the outcome as a tool message."""
        if self._on_tool:
            self._on_tool(call)
        if call.name not in self._invoker.registry:
            logger.warning("Model requested unknown tool: %s", call.name)
            content = json.dumps({"error": f"Tool {call.name} not found"})
        else:
            tools_used.append(call.name)
            result = await self._invoker.invoke(call)
            content = result.to_message_content()
        return LLMMessage(role="tool", content=content, tool_call_id=call.id, name=call.name)
