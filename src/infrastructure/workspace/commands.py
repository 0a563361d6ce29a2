"""Command runner - allow-listed shell execution inside the workspace."""

import asyncio
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

ALLOWED_COMMANDS = {
    "python",
    "python3",
    "pip",
    "pytest",
    "ruff",
    "mypy",
    "node",
    "npm",
    "npx",
    "git",
    "ls",
    "cat",
    "head",
    "tail",
    "grep",
    "find",
    "wc",
    "echo",
    "pwd",
    "make",
    "cargo",
    "go",
}

BLOCKED_PATTERNS = [
    "&&",
    "||",
    ";",
    "|",
    ">",
    "<",
    "`",
    "$",
    "eval",
    "exec",
]


@dataclass
class CommandResult:
    """Result of command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    error: str | None = None


class CommandRunner:
    """Runs validated commands with a timeout."""

    def __init__(self, cwd: str, timeout: float = 60.0):
        self._cwd = cwd
        self._timeout = timeout

    def validate(self, command: str) -> tuple[bool, str]:
        """Validate command against allow-list and blocked patterns.

        Returns:
            (is_valid, error_message)

        """
        if not command.strip():
            return False, "Empty command"
        for pattern in BLOCKED_PATTERNS:
            if pattern in command:
                return False, f"Blocked pattern: {pattern}"
        name = command.split()[0]
        if name not in ALLOWED_COMMANDS:
            return False, f"Command not allowed: {name}"
        return True, ""

    async def run(self, command: str) -> CommandResult:
        is_valid, error = self.validate(command)
        if not is_valid:
            return CommandResult(success=False, error=error, exit_code=-1)

        try:
            proc = await asyncio.create_subprocess_shell(
                command,
                cwd=self._cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            logger.warning("Command failed to start: %s: %s", command, e)
            return CommandResult(success=False, error=str(e), exit_code=-1)

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning("Command timed out after %ss: %s", self._timeout, command)
            return CommandResult(
                success=False,
                error=f"Command timed out after {self._timeout}s",
                exit_code=-1,
            )

        return CommandResult(
            success=proc.returncode == 0,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=proc.returncode or 0,
        )
