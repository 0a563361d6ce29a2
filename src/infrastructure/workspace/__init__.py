"""Local workspace collaborator."""

from src.infrastructure.workspace.confirmation import (
    ConfirmationHandler,
    always_approve,
    always_decline,
)
from src.infrastructure.workspace.local import LocalWorkspace

__all__ = ["ConfirmationHandler", "LocalWorkspace", "always_approve", "always_decline"]
