"""Pending file change API routes."""

import logging

from fastapi import APIRouter, Depends, Request

from src.api.dependencies import configured_rate_limit, get_workspace, limiter
from src.application.orchestration.dto import ChangeResponse, FileChangeRequest
from src.infrastructure.workspace import LocalWorkspace

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/changes", tags=["changes"])


@router.get("")
@limiter.limit(configured_rate_limit)
async def list_changes(
    request: Request,
    workspace: LocalWorkspace = Depends(get_workspace),
) -> dict:
    """List files with pending (proposed, not yet applied) changes."""
    pending = []
    for path in workspace.list_pending():
        change = workspace.get_pending(path)
        pending.append(
            {
                "file_path": path,
                "is_new": bool(change and not change.original_content),
                "new_size": len(change.new_content) if change else 0,
            }
        )
    return {"pending": pending}


@router.post("/accept")
@limiter.limit(configured_rate_limit)
async def accept_change(
    request: Request,
    body: FileChangeRequest,
    workspace: LocalWorkspace = Depends(get_workspace),
) -> ChangeResponse:
    """Apply one pending change."""
    result = await workspace.accept_change(body.file_path)
    if not result.success:
        return ChangeResponse(success=False, file_path=body.file_path, error=result.error)
    return ChangeResponse(success=True, file_path=body.file_path, message=f"Changes applied to {body.file_path}")


@router.post("/reject")
@limiter.limit(configured_rate_limit)
async def reject_change(
    request: Request,
    body: FileChangeRequest,
    workspace: LocalWorkspace = Depends(get_workspace),
) -> ChangeResponse:
    """Discard one pending change."""
    result = workspace.reject_change(body.file_path)
    if not result.success:
        return ChangeResponse(success=False, file_path=body.file_path, error=result.error)
    return ChangeResponse(success=True, file_path=body.file_path, message=f"Changes rejected for {body.file_path}")


@router.post("/undo")
@limiter.limit(configured_rate_limit)
async def undo_last_change(
    request: Request,
    workspace: LocalWorkspace = Depends(get_workspace),
) -> ChangeResponse:
    """Revert the most recent applied change."""
    result = await workspace.undo_last_change()
    if not result.success:
        return ChangeResponse(success=False, error=result.error)
    data = result.data or {}
    logger.info("Undo via API: %s", data)
    return ChangeResponse(
        success=True,
        file_path=data.get("path"),
        message=f"Undid {data.get('undone')} of {data.get('path')}",
    )
