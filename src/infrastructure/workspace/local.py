"""Local workspace - file, search and command operations under one root."""

import logging
import os
from dataclasses import dataclass
from fnmatch import fnmatch
from pathlib import Path

from src.domain.ports.workspace import WorkspaceResult
from src.infrastructure.workspace.commands import CommandRunner
from src.infrastructure.workspace.confirmation import ConfirmationHandler, always_approve

logger = logging.getLogger(__name__)

EXCLUDED_DIRS = {
    ".git",
    ".venv",
    "venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".ruff_cache",
    ".mypy_cache",
    "dist",
    "build",
    "coverage",
}

DEFAULT_SEARCH_PATTERNS = (
    "*.py",
    "*.ts",
    "*.js",
    "*.json",
    "*.md",
    "*.toml",
    "*.yaml",
    "*.yml",
    "*.html",
    "*.css",
)


@dataclass
class FileChange:
    """One applied change, kept for undo."""

    file_path: str
    original_content: str | None
    new_content: str
    operation: str  # "create" | "modify"


@dataclass
class PendingChange:
    """Proposed write waiting for accept/reject."""

    file_path: str
    original_content: str
    new_content: str


class LocalWorkspace:
    """Workspace collaborator over the local file system.

    Writes and commands may need user confirmation. A declined operation comes
    back as ``success=False``; nothing here raises for expected failures.
    In ``propose`` write mode writes become pending changes resolved through
    accept_change / reject_change.
    """

    def __init__(
        self,
        root: str | None = None,
        confirm: ConfirmationHandler = always_approve,
        write_mode: str = "direct",
        require_confirmation: bool = True,
        command_timeout: float = 60.0,
        search_max_results: int = 100,
    ):
        self._root = Path(root).resolve() if root else Path.cwd().resolve()
        self._confirm = confirm
        self._write_mode = write_mode
        self._require_confirmation = require_confirmation
        self._search_max_results = search_max_results
        self._commands = CommandRunner(cwd=str(self._root), timeout=command_timeout)
        self._history: list[FileChange] = []
        self._pending: dict[str, PendingChange] = {}

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, path: str) -> Path | None:
        """Resolve path under root. None when it escapes (traversal or symlink)."""
        target = Path(path)
        if not target.is_absolute():
            target = self._root / target
        try:
            target.resolve(strict=False).relative_to(self._root)
        except (ValueError, OSError):
            return None
        return target

    def _relative(self, target: Path) -> str:
        return target.resolve(strict=False).relative_to(self._root).as_posix()

    async def _confirmed(self, message: str, needs_confirmation: bool = True) -> bool:
        if not (needs_confirmation and self._require_confirmation):
            return True
        return await self._confirm(message)

    async def read_file(self, path: str) -> WorkspaceResult:
        target = self._resolve(path)
        if target is None:
            return WorkspaceResult(success=False, error="Access denied")
        if not target.exists():
            return WorkspaceResult(success=False, error=f"File not found: {path}")
        if not target.is_file():
            return WorkspaceResult(success=False, error=f"Not a file: {path}")
        try:
            content = target.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("File read failed for %s: %s", target, e)
            return WorkspaceResult(success=False, error=str(e))
        return WorkspaceResult(success=True, data={"content": content})

    async def write_file(
        self,
        path: str,
        content: str,
        needs_confirmation: bool = True,
    ) -> WorkspaceResult:
        if self._write_mode == "propose":
            return self.propose_change(path, content)

        target = self._resolve(path)
        if target is None:
            return WorkspaceResult(success=False, error="Access denied")

        operation = "modify" if target.exists() else "create"
        action = "Modify" if operation == "modify" else "Create"
        if not await self._confirmed(f"{action} {path}?", needs_confirmation):
            logger.info("Write declined by user: %s", path)
            return WorkspaceResult(success=False, error="User declined the file write operation")
        return self._apply_write(target, content)

    def _apply_write(self, target: Path, content: str) -> WorkspaceResult:
        operation = "modify" if target.exists() else "create"
        original: str | None = None
        try:
            if operation == "modify":
                original = target.read_text(encoding="utf-8", errors="replace")
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning("File write failed for %s: %s", target, e)
            return WorkspaceResult(success=False, error=str(e))

        rel = self._relative(target)
        self._history.append(
            FileChange(file_path=rel, original_content=original, new_content=content, operation=operation)
        )
        logger.info("%s file: %s", "Modified" if operation == "modify" else "Created", rel)
        return WorkspaceResult(success=True, data={"path": rel, "operation": operation})

    async def list_files(self, path: str = ".") -> WorkspaceResult:
        target = self._resolve(path or ".")
        if target is None:
            return WorkspaceResult(success=False, error="Access denied")
        if not target.is_dir():
            return WorkspaceResult(success=False, error=f"Not a directory: {path}")
        try:
            names = sorted(p.name + ("/" if p.is_dir() else "") for p in target.iterdir())
        except OSError as e:
            return WorkspaceResult(success=False, error=str(e))
        return WorkspaceResult(success=True, data={"files": names})

    def _matches(self, rel: str, name: str, file_pattern: str | None) -> bool:
        if not file_pattern:
            return any(fnmatch(name, p) for p in DEFAULT_SEARCH_PATTERNS)
        if fnmatch(rel, file_pattern):
            return True
        # "**/*.py" should also match files at the root
        return file_pattern.startswith("**/") and fnmatch(rel, file_pattern[3:])

    async def search_code(self, query: str, file_pattern: str | None = None) -> WorkspaceResult:
        if not query:
            return WorkspaceResult(success=False, error="query required")
        hits: list[dict] = []
        for dirpath, dirnames, filenames in os.walk(self._root):
            dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS and not d.startswith("."))
            for filename in sorted(filenames):
                full = Path(dirpath) / filename
                rel = full.relative_to(self._root).as_posix()
                if not self._matches(rel, filename, file_pattern):
                    continue
                if self._resolve(rel) is None:
                    logger.debug("Skipping file outside workspace: %s", rel)
                    continue
                try:
                    lines = full.read_text(encoding="utf-8", errors="replace").splitlines()
                except OSError:
                    logger.debug("Skipping unreadable file: %s", full)
                    continue
                for lineno, line in enumerate(lines, 1):
                    if query in line:
                        hits.append({"file": rel, "line": lineno, "text": line.strip()})
                        if len(hits) >= self._search_max_results:
                            return WorkspaceResult(success=True, data={"results": hits, "truncated": True})
        return WorkspaceResult(success=True, data={"results": hits, "truncated": False})

    async def run_command(self, command: str) -> WorkspaceResult:
        is_valid, error = self._commands.validate(command)
        if not is_valid:
            return WorkspaceResult(success=False, error=error)
        if not await self._confirmed(f"Run command: {command}?"):
            logger.info("Command declined by user: %s", command)
            return WorkspaceResult(success=False, error="User declined to run the command")

        result = await self._commands.run(command)
        data = {"stdout": result.stdout, "stderr": result.stderr, "exit_code": result.exit_code}
        if result.success:
            return WorkspaceResult(success=True, data=data)
        return WorkspaceResult(
            success=False,
            data=data,
            error=result.error or f"Command exited with code {result.exit_code}",
        )

    def propose_change(self, path: str, content: str) -> WorkspaceResult:
        target = self._resolve(path)
        if target is None:
            return WorkspaceResult(success=False, error="Access denied")
        rel = self._relative(target)
        original = ""
        if target.is_file():
            try:
                original = target.read_text(encoding="utf-8", errors="replace")
            except OSError as e:
                logger.debug("Could not read original content of %s: %s", rel, e)
        self._pending[rel] = PendingChange(file_path=rel, original_content=original, new_content=content)
        logger.info("Proposed change for %s", rel)
        return WorkspaceResult(
            success=True,
            data={"path": rel, "pending": True, "message": f"Proposed edit for {rel} (pending user approval)"},
        )

    def _pending_key(self, path: str) -> str | None:
        target = self._resolve(path)
        return self._relative(target) if target is not None else None

    async def accept_change(self, path: str) -> WorkspaceResult:
        key = self._pending_key(path)
        change = self._pending.pop(key, None) if key else None
        if change is None:
            return WorkspaceResult(success=False, error=f"No pending changes found for file: {path}")
        return self._apply_write(self._root / change.file_path, change.new_content)

    def reject_change(self, path: str) -> WorkspaceResult:
        key = self._pending_key(path)
        if not key or self._pending.pop(key, None) is None:
            return WorkspaceResult(success=False, error=f"No pending changes found for file: {path}")
        return WorkspaceResult(success=True, data={"path": key, "rejected": True})

    def list_pending(self) -> list[str]:
        return list(self._pending)

    def get_pending(self, path: str) -> PendingChange | None:
        key = self._pending_key(path)
        return self._pending.get(key) if key else None

    async def undo_last_change(self) -> WorkspaceResult:
        if not self._history:
            return WorkspaceResult(success=False, error="No changes to undo")
        change = self._history.pop()
        target = self._root / change.file_path
        try:
            if change.operation == "create":
                target.unlink(missing_ok=True)
            elif change.original_content is not None:
                target.write_text(change.original_content, encoding="utf-8")
            else:
                return WorkspaceResult(success=False, error=f"Could not undo change to {change.file_path}")
        except OSError as e:
            logger.warning("Undo failed for %s: %s", change.file_path, e)
            return WorkspaceResult(success=False, error=str(e))
        logger.info("Undid %s of %s", change.operation, change.file_path)
        return WorkspaceResult(success=True, data={"path": change.file_path, "undone": change.operation})
