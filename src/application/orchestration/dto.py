"""Orchestration DTOs."""

from typing import Any

from pydantic import BaseModel, Field

from src.domain.entities.task import WorkerResult


class OrchestrateRequest(BaseModel):
    """Request to run one task. Empty queries are rejected by the use case, not here."""

    query: str = Field("", max_length=50_000)
    context: str | None = Field(None, max_length=200_000)


class ExecutionResult(BaseModel):
    """Outcome of one execute() call."""

    success: bool
    response: str | None = None
    error: str | None = None
    run_id: str | None = None
    results: dict[str, WorkerResult] | None = None


class ProgressEvent(BaseModel):
    """SSE event for streaming run progress."""

    event_type: str  # progress, node, tool, error, done
    message: str | None = None
    payload: dict[str, Any] | None = None


class FileChangeRequest(BaseModel):
    """Accept or reject one pending change."""

    file_path: str = Field(..., min_length=1, max_length=4096)


class ChangeResponse(BaseModel):
    """Result of a pending-change operation."""

    success: bool
    file_path: str | None = None
    message: str | None = None
    error: str | None = None
