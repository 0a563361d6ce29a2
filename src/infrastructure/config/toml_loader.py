"""Settings loader: config/default.toml, then development.toml, then env vars."""

import logging
import os
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

from src.domain.ports.config import (
    AppConfig,
    LLMConfig,
    ModelConfig,
    OllamaConfig,
    OpenAICompatibleConfig,
    OrchestratorConfig,
    SecurityConfig,
    ServerConfig,
    WorkspaceConfig,
)

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).resolve().parents[3] / "config"


def _csv(raw: str) -> list[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


# env var -> (section, key, converter)
ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "LLM_PROVIDER": ("llm", "provider", lambda v: v.strip().lower()),
    "OLLAMA_HOST": ("ollama", "host", str.strip),
    "OPENAI_BASE_URL": ("openai_compatible", "base_url", str.strip),
    "OPENAI_API_KEY": ("openai_compatible", "api_key", str.strip),
    "PORT": ("server", "port", int),
    "LOG_LEVEL": ("logging", "level", lambda v: v.strip().upper()),
    "LOG_FILE": ("logging", "file", str.strip),
    "ORCHESTRATOR_STRATEGY": ("orchestrator", "planner_strategy", lambda v: v.strip().lower()),
    "ORCHESTRATOR_MAX_TOOL_ROUNDS": ("orchestrator", "max_tool_rounds", int),
    "WORKSPACE_ROOT": ("workspace", "root", str.strip),
    "CORS_ORIGINS": ("security", "cors_origins", _csv),
    "RATE_LIMIT_PER_MINUTE": ("security", "rate_limit_requests_per_minute", int),
}


def _read_toml(path: Path) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _merge_sections(base: dict, override: dict) -> dict:
    """Shallow merge per [section]; top-level scalars are replaced."""
    merged = dict(base)
    for section, values in override.items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            merged[section] = {**merged[section], **values}
        else:
            merged[section] = values
    return merged


def _apply_env_overrides(config: dict) -> dict:
    """Apply ENV_OVERRIDES in place. Unparseable values are logged and skipped."""
    for env_name, (section, key, convert) in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if not raw:
            continue
        try:
            value = convert(raw)
        except ValueError:
            logger.warning("Invalid %s env value: %r, ignoring", env_name, raw)
            continue
        config.setdefault(section, {})[key] = value
    return config


def load_config(config_dir: Path | None = None) -> AppConfig:
    """Build AppConfig. Missing files just mean defaults."""
    config_dir = config_dir or CONFIG_DIR
    raw: dict = {}
    for name in ("default.toml", "development.toml"):
        path = config_dir / name
        if path.exists():
            raw = _merge_sections(raw, _read_toml(path))
            logger.debug("Loaded config file %s", path)
    raw = _apply_env_overrides(raw)

    def section(name: str) -> dict:
        return raw.get(name) or {}

    log_section = section("logging")
    return AppConfig(
        server=ServerConfig(**section("server")),
        llm=LLMConfig(**section("llm")),
        ollama=OllamaConfig(**section("ollama")),
        openai_compatible=OpenAICompatibleConfig(**section("openai_compatible")),
        models=ModelConfig(**section("models")),
        orchestrator=OrchestratorConfig(**section("orchestrator")),
        workspace=WorkspaceConfig(**section("workspace")),
        security=SecurityConfig(**section("security")),
        log_level=log_section.get("level", "INFO"),
        log_file=(log_section.get("file") or "").strip(),
        log_rotation_max_mb=int(log_section.get("log_rotation_max_mb", 5)),
        log_rotation_backups=int(log_section.get("log_rotation_backups", 3)),
    )
