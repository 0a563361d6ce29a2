"""Model client port - interface for language model providers."""

from typing import Any, Protocol

from pydantic import BaseModel, Field

from src.domain.entities.task import ToolCall


class LLMMessage(BaseModel):
    """Single message in a conversation."""

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str
    tool_calls: list[ToolCall] = Field(default_factory=list)  # assistant turns only
    tool_call_id: str | None = None  # tool turns only
    name: str | None = None  # tool name on tool turns


class LLMResponse(BaseModel):
    """Plain text response (no tools)."""

    content: str
    model: str
    done: bool = True


class ModelReply(BaseModel):
    """Assistant turn from a tool-enabled call."""

    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    model: str = ""


class ModelClientPort(Protocol):
    """Interface for LLM providers (Ollama, LM Studio, OpenAI).

    Implementations raise on transport errors and malformed payloads;
    callers own the conversion into structured failures.
    """

    configuration_error: str | None

    async def chat_with_tools(
        self,
        messages: list[LLMMessage],
        tools: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = 0.3,
    ) -> ModelReply:
        """Send messages plus tool schema, return text and requested tool calls."""
        ...

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response without tools."""
        ...

    async def is_available(self) -> bool:
        """Check if the provider is reachable."""
        ...

    async def close(self) -> None:
        ...
