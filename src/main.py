"""FastAPI app: orchestrate and pending-change routes plus /health."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from src.api.container import get_container
from src.api.dependencies import limiter
from src.api.routes.changes import router as changes_router
from src.api.routes.orchestrate import router as orchestrate_router
from src.domain.ports.config import AppConfig
from src.shared.logging import setup_logging

log = structlog.get_logger()


def _configure_logging(config: AppConfig) -> None:
    setup_logging(
        level=config.log_level,
        file_path=config.log_file,
        rotation_max_mb=config.log_rotation_max_mb,
        rotation_backups=config.log_rotation_backups,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and report an unusable model client; close it on shutdown."""
    container = get_container()
    config = container.config
    _configure_logging(config)
    log.info(
        "orchestrator_starting",
        llm_provider=config.llm.provider,
        default_model=config.models.default,
        strategy=config.orchestrator.planner_strategy,
        write_mode=config.workspace.write_mode,
        workspace=str(container.workspace.root),
    )
    if container.llm.configuration_error:
        # Runs will be rejected until this is fixed; the server still starts.
        log.warning("llm_not_configured", error=container.llm.configuration_error)
    yield
    try:
        await container.llm.close()
    except Exception:  # noqa: BLE001
        log.debug("llm_close_failed", exc_info=True)
    log.info("orchestrator_stopped")


app = FastAPI(
    title="Task Orchestrator",
    version="0.1.0",
    description="Plans coding requests into subtasks and runs them with workspace tools",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_container().config.security.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(orchestrate_router)
app.include_router(changes_router)


@app.get("/health")
@limiter.limit("100/minute")
async def health(request: Request) -> dict:
    """Liveness plus model reachability and whether a run is active."""
    container = get_container()
    return {
        "status": "ok",
        "service": "task-orchestrator",
        "llm_provider": container.config.llm.provider,
        "llm_available": await container.llm.is_available(),
        "model": container.config.models.default,
        "configuration_error": container.llm.configuration_error,
        "is_executing": container.orchestrator_use_case.is_executing,
    }
