"""Tool invoker - runs one tool call and normalizes the outcome."""

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any

import structlog

from src.domain.entities.task import ToolCall
from src.infrastructure.tools.registry import ToolRegistry

logger = logging.getLogger(__name__)
events = structlog.get_logger()


@dataclass
class ToolResult:
    """Uniform envelope returned to the model as a tool message."""

    success: bool
    data: Any = None
    error: str | None = None
    tool: str = ""
    args: dict[str, Any] = field(default_factory=dict)

    def to_message_content(self) -> str:
        """JSON body of the tool-role message."""
        body: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            body["data"] = self.data
        if self.error:
            body["error"] = self.error
        return json.dumps(body, ensure_ascii=False, default=str)


class ToolInvoker:
    """Executes tool calls against a registry. Never raises."""

    def __init__(self, registry: ToolRegistry):
        self._registry = registry

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    async def invoke(self, call: ToolCall) -> ToolResult:
        started = time.perf_counter()
        result = await self._dispatch(call)
        events.info(
            "tool_invoked",
            tool=call.name,
            call_id=call.id,
            success=result.success,
            error=result.error,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return result

    async def _dispatch(self, call: ToolCall) -> ToolResult:
        spec = self._registry.get(call.name)
        if spec is None:
            return ToolResult(success=False, error=f"Tool {call.name} not found", tool=call.name, args=call.arguments)

        args = call.arguments if isinstance(call.arguments, dict) else {}
        missing = [name for name in spec.required if args.get(name) is None]
        if missing:
            return ToolResult(
                success=False,
                error=f"Missing required argument(s): {', '.join(missing)}",
                tool=call.name,
                args=args,
            )

        try:
            result = await spec.handler(args)
        except Exception as e:
            logger.warning("Tool %s failed: %s", call.name, e, exc_info=True)
            return ToolResult(success=False, error=f"Error executing tool {call.name}: {e}", tool=call.name, args=args)

        return ToolResult(
            success=result.success,
            data=result.data,
            error=result.error,
            tool=call.name,
            args=args,
        )
