"""Service wiring: config, model client, workspace and the orchestrator singleton."""

from functools import cached_property
from typing import TYPE_CHECKING

from src.domain.ports.config import AppConfig
from src.domain.ports.llm import ModelClientPort
from src.infrastructure.config import load_config
from src.infrastructure.workspace import LocalWorkspace, always_approve, always_decline

if TYPE_CHECKING:
    from src.application.orchestration.use_case import OrchestratorUseCase


class Container:
    """Lazily built, cached services for one process.

    All dependencies are created on first access and cached. The orchestrator
    is a singleton so its one-run-at-a-time guard covers every request.

    Usage:
        container = Container()
        use_case = container.orchestrator_use_case
    """

    def __init__(self, config: AppConfig | None = None):
        """Pass config to skip loading config/*.toml (tests, embedding)."""
        self._config_override = config

    @cached_property
    def config(self) -> AppConfig:
        """Settings from the override or the TOML files."""
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def llm(self) -> ModelClientPort:
        """Model client based on config provider."""
        provider = self.config.llm.provider
        if provider in ("lm_studio", "openai"):
            from src.infrastructure.llm.openai_compatible import OpenAICompatibleAdapter

            return OpenAICompatibleAdapter(
                self.config.openai_compatible,
                require_api_key=provider == "openai",
            )

        from src.infrastructure.llm.ollama import OllamaAdapter

        return OllamaAdapter(self.config.ollama)

    @cached_property
    def workspace(self) -> LocalWorkspace:
        """Workspace collaborator. No human in the loop: confirmations follow auto_approve."""
        ws = self.config.workspace
        return LocalWorkspace(
            root=ws.root or None,
            confirm=always_approve if ws.auto_approve else always_decline,
            write_mode=ws.write_mode,
            require_confirmation=ws.require_confirmation,
            command_timeout=ws.command_timeout,
            search_max_results=ws.search_max_results,
        )

    @cached_property
    def orchestrator_use_case(self) -> "OrchestratorUseCase":
        """Orchestrator use case (singleton)."""
        from src.application.orchestration.use_case import OrchestratorUseCase

        return OrchestratorUseCase(
            llm=self.llm,
            workspace=self.workspace,
            models=self.config.models,
            settings=self.config.orchestrator,
        )

    def reset(self) -> None:
        """Drop cached services; the next access rebuilds them."""
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)


_container: Container | None = None


def get_container() -> Container:
    """Process-wide container, created on first use."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def set_container(container: Container) -> None:
    """Replace global container (tests, embedding in another app)."""
    global _container
    _container = container


def reset_container() -> None:
    """Forget the process-wide container."""
    global _container
    if _container:
        _container.reset()
    _container = None
