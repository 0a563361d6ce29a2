"""Orchestration API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from src.api.dependencies import configured_rate_limit, get_orchestrator_use_case, limiter
from src.application.orchestration.dto import ExecutionResult, OrchestrateRequest
from src.application.orchestration.use_case import OrchestratorUseCase

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orchestrate", tags=["orchestrate"])


@router.post("", response_model=None)
@limiter.limit(configured_rate_limit)
async def orchestrate(
    request: Request,
    orchestrate_request: OrchestrateRequest,
    use_case: OrchestratorUseCase = Depends(get_orchestrator_use_case),
    stream: bool = False,
) -> ExecutionResult | EventSourceResponse:
    """Run one task. Use stream=true for SSE progress events."""
    if stream:
        return _stream_response(orchestrate_request, use_case)
    try:
        return await use_case.execute(orchestrate_request)
    except Exception:
        logger.exception("Orchestration failed")
        raise HTTPException(status_code=500, detail="Orchestration failed")


@router.post("/cancel")
@limiter.limit(configured_rate_limit)
async def cancel(
    request: Request,
    use_case: OrchestratorUseCase = Depends(get_orchestrator_use_case),
) -> dict:
    """Cancel the active run before its next step."""
    cancelled = use_case.cancel()
    return {"cancelled": cancelled, "is_executing": use_case.is_executing}


def _stream_response(
    orchestrate_request: OrchestrateRequest,
    use_case: OrchestratorUseCase,
) -> EventSourceResponse:
    """Return SSE stream of progress events."""

    async def event_generator():
        try:
            async for evt in use_case.execute_stream(orchestrate_request):
                yield {"event": evt.event_type, "data": evt.model_dump_json()}
        except Exception:
            logger.exception("Orchestration stream failed")
            yield {"event": "error", "data": "Stream failed"}
        yield {"event": "close", "data": ""}

    return EventSourceResponse(event_generator())
