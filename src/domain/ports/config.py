"""Application settings, loaded from config/*.toml by the config loader."""

from pydantic import BaseModel, ConfigDict


ROLES = ("planner", "analysis", "generation", "test", "synthesis")


class ModelConfig(BaseModel):
    """Model IDs: one default plus optional per-role overrides."""

    default: str = "qwen2.5-coder:7b"
    planner: str | None = None
    analysis: str | None = None
    generation: str | None = None
    test: str | None = None
    synthesis: str | None = None

    model_config = ConfigDict(extra="ignore")

    def for_role(self, role: str) -> str:
        """Resolve model for a role ("planner", "analysis", ...). Falls back to default."""
        override = getattr(self, role) if role in ROLES else None
        return override or self.default


class LLMConfig(BaseModel):
    """LLM provider selection."""

    provider: str = "ollama"  # "ollama" | "lm_studio" | "openai"


class OllamaConfig(BaseModel):
    """Ollama connection configuration."""

    host: str = "http://localhost:11434"
    timeout: int = 120
    num_ctx: int | None = None  # None = model default


class OpenAICompatibleConfig(BaseModel):
    """OpenAI API, LM Studio, vLLM, LocalAI."""

    base_url: str = "http://localhost:1234/v1"
    api_key: str = ""
    timeout: int = 120
    max_tokens: int | None = None  # None = server default


class OrchestratorConfig(BaseModel):
    """Planning and execution limits."""

    planner_strategy: str = "classify"  # "classify" | "decompose"
    max_tool_rounds: int = 10
    keyword_followup: bool = False
    temperature: float = 0.3
    max_subtasks: int = 12


class WorkspaceConfig(BaseModel):
    """Local workspace collaborator."""

    root: str = ""  # empty = current directory
    write_mode: str = "direct"  # "direct" | "propose"
    require_confirmation: bool = True
    auto_approve: bool = True  # answer confirmations without a human (API/headless)
    command_timeout: float = 60.0
    search_max_results: int = 100


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 60
    cors_origins: list[str] = ["http://localhost:5173"]


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    llm: LLMConfig = LLMConfig()
    ollama: OllamaConfig = OllamaConfig()
    openai_compatible: OpenAICompatibleConfig = OpenAICompatibleConfig()
    models: ModelConfig = ModelConfig()
    orchestrator: OrchestratorConfig = OrchestratorConfig()
    workspace: WorkspaceConfig = WorkspaceConfig()
    security: SecurityConfig = SecurityConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3

