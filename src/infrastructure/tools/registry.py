"""Tool registry - the fixed capability set and its JSON-schema contracts.

Tool names and argument names are part of the prompt contract with the model.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from src.domain.ports.workspace import WorkspacePort, WorkspaceResult

ToolHandler = Callable[[dict[str, Any]], Awaitable[WorkspaceResult]]


@dataclass(frozen=True)
class ToolSpec:
    """One tool: name, description, parameter schema and its bound handler."""

    name: str
    description: str
    parameters: dict[str, dict[str, Any]]
    handler: ToolHandler
    required: tuple[str, ...] = field(default_factory=tuple)

    def schema(self) -> dict[str, Any]:
        """OpenAI / Ollama function-tool format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "required": list(self.required),
                    "properties": self.parameters,
                },
            },
        }


class ToolRegistry:
    """Name -> ToolSpec lookup in registration order."""

    def __init__(self, specs: list[ToolSpec] | None = None):
        self._specs: dict[str, ToolSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._specs:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._specs[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self._specs.get(name)

    def names(self) -> list[str]:
        return list(self._specs)

    def schema(self) -> list[dict[str, Any]]:
        return [spec.schema() for spec in self._specs.values()]

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)


def build_default_registry(workspace: WorkspacePort) -> ToolRegistry:
    """readFile, writeFile, listFiles, searchCode, runCommand bound to a workspace."""

    async def read_file(args: dict[str, Any]) -> WorkspaceResult:
        return await workspace.read_file(args["filePath"])

    async def write_file(args: dict[str, Any]) -> WorkspaceResult:
        return await workspace.write_file(args["filePath"], args["content"], needs_confirmation=True)

    async def list_files(args: dict[str, Any]) -> WorkspaceResult:
        return await workspace.list_files(args.get("directoryPath") or ".")

    async def search_code(args: dict[str, Any]) -> WorkspaceResult:
        return await workspace.search_code(args["query"], args.get("filePattern") or None)

    async def run_command(args: dict[str, Any]) -> WorkspaceResult:
        return await workspace.run_command(args["command"])

    return ToolRegistry(
        [
            ToolSpec(
                name="readFile",
                description="Read the contents of a file in the workspace",
                parameters={"filePath": {"type": "string", "description": "Path to the file to read"}},
                required=("filePath",),
                handler=read_file,
            ),
            ToolSpec(
                name="writeFile",
                description="Write content to a file in the workspace (creates the file if it doesn't exist)",
                parameters={
                    "filePath": {"type": "string", "description": "Path to the file to write"},
                    "content": {"type": "string", "description": "Content to write to the file"},
                },
                required=("filePath", "content"),
                handler=write_file,
            ),
            ToolSpec(
                name="listFiles",
                description="List files in a directory",
                parameters={"directoryPath": {"type": "string", "description": "Path to the directory to list"}},
                required=("directoryPath",),
                handler=list_files,
            ),
            ToolSpec(
                name="searchCode",
                description="Search for code in the workspace using a query",
                parameters={
                    "query": {"type": "string", "description": "Search query to find in code"},
                    "filePattern": {
                        "type": "string",
                        "description": 'Optional glob pattern to filter files (e.g., "**/*.py" for Python files)',
                    },
                },
                required=("query",),
                handler=search_code,
            ),
            ToolSpec(
                name="runCommand",
                description="Run a command in the terminal (use with caution)",
                parameters={"command": {"type": "string", "description": "Command to execute"}},
                required=("command",),
                handler=run_command,
            ),
        ]
    )
