"""Workspace port - the only stateful resource the orchestrator touches."""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass
class WorkspaceResult:
    """Uniform result of a workspace operation. Declines are failures, not exceptions."""

    success: bool
    data: Any = None
    error: str | None = None


class WorkspacePort(Protocol):
    """File, search and command surface plus the pending-change registry."""

    async def read_file(self, path: str) -> WorkspaceResult:
        ...

    async def write_file(
        self,
        path: str,
        content: str,
        needs_confirmation: bool = True,
    ) -> WorkspaceResult:
        ...

    async def list_files(self, path: str = ".") -> WorkspaceResult:
        ...

    async def search_code(self, query: str, file_pattern: str | None = None) -> WorkspaceResult:
        ...

    async def run_command(self, command: str) -> WorkspaceResult:
        ...

    def propose_change(self, path: str, content: str) -> WorkspaceResult:
        ...

    async def accept_change(self, path: str) -> WorkspaceResult:
        ...

    def reject_change(self, path: str) -> WorkspaceResult:
        ...

    def list_pending(self) -> list[str]:
        ...

    async def undo_last_change(self) -> WorkspaceResult:
        ...
