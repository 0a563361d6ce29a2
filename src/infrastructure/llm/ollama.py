"""Ollama adapter - implements ModelClientPort over the ollama client."""

import json
import logging
from typing import Any

import httpx
from ollama import AsyncClient

from src.domain.entities.task import ToolCall
from src.domain.ports.config import OllamaConfig
from src.domain.ports.llm import LLMMessage, LLMResponse, ModelReply

logger = logging.getLogger(__name__)

# Fail fast when the host is down; reads get the full configured timeout
DEFAULT_CONNECT_TIMEOUT = 5.0


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read attribute or dict key (ollama returns typed objects, tests pass dicts)."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class OllamaAdapter:
    """Ollama implementation of ModelClientPort. Errors propagate to the caller."""

    configuration_error: str | None = None

    def __init__(self, config: OllamaConfig) -> None:
        self._config = config
        read_timeout = float(config.timeout) if config.timeout else 120.0
        timeout = httpx.Timeout(
            connect=DEFAULT_CONNECT_TIMEOUT,
            read=read_timeout,
            write=read_timeout,
            pool=30.0,
        )
        self._client = AsyncClient(host=config.host, timeout=timeout)

    def _ollama_options(self, temperature: float) -> dict:
        """Build options dict: temperature + optional num_ctx from config."""
        opts: dict = {"temperature": temperature}
        if self._config.num_ctx is not None:
            opts["num_ctx"] = self._config.num_ctx
        return opts

    @staticmethod
    def _messages_to_ollama(messages: list[LLMMessage]) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        for m in messages:
            msg: dict[str, Any] = {"role": m.role, "content": m.content}
            if m.tool_calls:
                msg["tool_calls"] = [
                    {"function": {"name": tc.name, "arguments": tc.arguments}} for tc in m.tool_calls
                ]
            if m.role == "tool" and m.name:
                msg["tool_name"] = m.name
            out.append(msg)
        return out

    @staticmethod
    def _tool_calls(message: Any) -> list[ToolCall]:
        calls = []
        for i, tc in enumerate(_field(message, "tool_calls") or []):
            fn = _field(tc, "function", tc)
            args = _field(fn, "arguments", {}) or {}
            if isinstance(args, str):
                try:
                    args = json.loads(args) if args.strip() else {}
                except json.JSONDecodeError:
                    args = {}
            # Ollama does not issue call ids; synthesize stable ones per reply
            calls.append(ToolCall(name=_field(fn, "name", ""), id=f"call_{i}", arguments=dict(args)))
        return calls

    async def chat_with_tools(
        self,
        messages: list[LLMMessage],
        tools: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = 0.3,
    ) -> ModelReply:
        """Chat with native tool calling."""
        model = model or "llama3.1"
        response = await self._client.chat(
            model=model,
            messages=self._messages_to_ollama(messages),
            tools=tools,
            options=self._ollama_options(temperature),
        )
        message = _field(response, "message")
        content = (_field(message, "content") or "") if message is not None else ""
        calls = self._tool_calls(message) if message is not None else []
        return ModelReply(content=content, tool_calls=calls, model=_field(response, "model", model) or model)

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response."""
        model = model or "llama3.1"
        response = await self._client.chat(
            model=model,
            messages=self._messages_to_ollama(messages),
            options=self._ollama_options(temperature),
        )
        message = _field(response, "message")
        content = (_field(message, "content") or "") if message is not None else ""
        return LLMResponse(content=content, model=_field(response, "model", model) or model, done=True)

    async def is_available(self) -> bool:
        """Check if Ollama server is available."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._config.host.rstrip('/')}/api/tags")
                return resp.status_code == 200
        except (httpx.HTTPError, OSError) as e:
            logger.debug("Ollama availability check failed: %s", e)
            return False

    async def close(self) -> None:
        """Nothing to release; the ollama client owns its transport."""
        return None
