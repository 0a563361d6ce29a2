"""Model-facing tools over the workspace collaborator."""

from src.infrastructure.tools.invoker import ToolInvoker, ToolResult
from src.infrastructure.tools.registry import ToolRegistry, ToolSpec, build_default_registry

__all__ = ["ToolInvoker", "ToolRegistry", "ToolResult", "ToolSpec", "build_default_registry"]
