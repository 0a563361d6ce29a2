"""Pytest configuration and shared fixtures."""

import pytest

from src.domain.ports.config import ModelConfig, OrchestratorConfig
from src.infrastructure.tools import ToolInvoker, build_default_registry
from src.infrastructure.workspace import LocalWorkspace
from tests.fakes import ScriptedModelClient


@pytest.fixture
def workspace(tmp_path):
    """Workspace rooted at a temp dir with one source file."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("def add(a, b):\n    return a + b\n", encoding="utf-8")
    return LocalWorkspace(root=str(tmp_path))


@pytest.fixture
def invoker(workspace):
    """Invoker over the default tool registry."""
    return ToolInvoker(build_default_registry(workspace))


@pytest.fixture
def models():
    """Per-role models so tests can see which role made a call."""
    return ModelConfig(
        default="default-model",
        planner="planner-model",
        synthesis="synthesis-model",
    )


@pytest.fixture
def settings():
    return OrchestratorConfig()


@pytest.fixture
def fake_llm():
    return ScriptedModelClient()


@pytest.fixture
def api_container(tmp_path):
    """Global container over a temp propose-mode workspace and a scripted model."""
    from src.api.container import Container, reset_container, set_container
    from src.api.dependencies import limiter
    from src.domain.ports.config import AppConfig, WorkspaceConfig

    container = Container(AppConfig(workspace=WorkspaceConfig(root=str(tmp_path), write_mode="propose")))
    container.llm = ScriptedModelClient()
    set_container(container)
    limiter.reset()
    yield container
    reset_container()
