"""Orchestration use case - plan, execute subtasks, synthesize."""

from src.application.orchestration.dto import (
    ChangeResponse,
    ExecutionResult,
    FileChangeRequest,
    OrchestrateRequest,
    ProgressEvent,
)
from src.application.orchestration.use_case import OrchestratorUseCase

__all__ = [
    "ChangeResponse",
    "ExecutionResult",
    "FileChangeRequest",
    "OrchestrateRequest",
    "OrchestratorUseCase",
    "ProgressEvent",
]
