"""FastAPI dependencies - DI container."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.container import get_container
from src.application.orchestration.use_case import OrchestratorUseCase
from src.domain.ports.config import AppConfig
from src.infrastructure.workspace import LocalWorkspace

limiter = Limiter(key_func=get_remote_address)


def get_config() -> AppConfig:
    """Config from the global container (loaded once)."""
    return get_container().config


def get_orchestrator_use_case() -> OrchestratorUseCase:
    """Shared orchestrator; one run at a time across all requests."""
    return get_container().orchestrator_use_case


def get_workspace() -> LocalWorkspace:
    """Workspace owning the pending-change registry."""
    return get_container().workspace


def configured_rate_limit() -> str:
    """Per-client limit from [security], read on every request."""
    return f"{get_config().security.rate_limit_requests_per_minute}/minute"
