"""OpenAI-compatible adapter - OpenAI API, LM Studio, vLLM, LocalAI."""

import json
import logging
from typing import Any

import httpx

from src.domain.entities.task import ToolCall
from src.domain.ports.config import OpenAICompatibleConfig
from src.domain.ports.llm import LLMMessage, LLMResponse, ModelReply

logger = logging.getLogger(__name__)


class MalformedResponseError(ValueError):
    """Provider answered 2xx with a payload we cannot read."""


def _parse_arguments(raw: Any) -> dict[str, Any]:
    """Tool arguments arrive as a JSON string (OpenAI) or a dict (some local servers)."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            logger.debug("Unparseable tool arguments: %s", raw[:200])
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


class OpenAICompatibleAdapter:
    """Implements ModelClientPort via /chat/completions."""

    def __init__(self, config: OpenAICompatibleConfig, require_api_key: bool = False) -> None:
        self._config = config
        self._base_url = config.base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json"}
        if config.api_key:
            self._headers["Authorization"] = f"Bearer {config.api_key}"
        self._client: httpx.AsyncClient | None = None
        self.configuration_error: str | None = None
        if require_api_key and not config.api_key:
            self.configuration_error = "No API key found. Set openai_compatible.api_key or OPENAI_API_KEY."

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create persistent async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._config.timeout,
                headers=self._headers,
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client (call during app shutdown)."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _chat_body(
        self,
        model: str,
        messages: list[dict[str, Any]],
        temperature: float,
        tools: list[dict] | None = None,
    ) -> dict:
        """Build request body; optional max_tokens from config."""
        body: dict = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "stream": False,
        }
        if self._config.max_tokens is not None:
            body["max_tokens"] = self._config.max_tokens
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        return body

    @staticmethod
    def _messages_to_openai(messages: list[LLMMessage]) -> list[dict[str, Any]]:
        """Convert internal messages (tool_calls, tool_call_id) to OpenAI API format."""
        out: list[dict[str, Any]] = []
        for m in messages:
            if m.role == "tool":
                out.append({"role": "tool", "content": m.content, "tool_call_id": m.tool_call_id or ""})
            elif m.role == "assistant" and m.tool_calls:
                out.append(
                    {
                        "role": "assistant",
                        "content": m.content or "",
                        "tool_calls": [
                            {
                                "id": tc.id,
                                "type": "function",
                                "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                            }
                            for tc in m.tool_calls
                        ],
                    }
                )
            else:
                out.append({"role": m.role, "content": m.content})
        return out

    async def _post(self, body: dict) -> dict:
        client = self._get_client()
        resp = await client.post(f"{self._base_url}/chat/completions", json=body)
        if resp.status_code >= 400:
            logger.error("LLM API error %s: %s", resp.status_code, resp.text[:500])
        resp.raise_for_status()
        try:
            return resp.json()
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON from LLM API: {e}") from e

    @staticmethod
    def _first_message(data: dict) -> dict:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices[0].get("message"), dict):
            raise MalformedResponseError("Invalid response from LLM API: no choices")
        return choices[0]["message"]

    async def chat_with_tools(
        self,
        messages: list[LLMMessage],
        tools: list[dict[str, Any]],
        model: str | None = None,
        temperature: float = 0.3,
    ) -> ModelReply:
        """Chat with tools. Returns content and tool calls (with ids)."""
        model = model or "default"
        body = self._chat_body(model, self._messages_to_openai(messages), temperature, tools=tools)
        data = await self._post(body)
        msg = self._first_message(data)
        calls = []
        for i, tc in enumerate(msg.get("tool_calls") or []):
            fn = tc.get("function") or {}
            calls.append(
                ToolCall(
                    name=fn.get("name", ""),
                    id=tc.get("id") or f"call_{i}",
                    arguments=_parse_arguments(fn.get("arguments")),
                )
            )
        return ModelReply(content=msg.get("content") or "", tool_calls=calls, model=data.get("model", model))

    async def generate(
        self,
        messages: list[LLMMessage],
        model: str | None = None,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Generate a single response without tools."""
        model = model or "default"
        body = self._chat_body(model, self._messages_to_openai(messages), temperature)
        data = await self._post(body)
        msg = self._first_message(data)
        return LLMResponse(content=msg.get("content") or "", model=data.get("model", model))

    async def is_available(self) -> bool:
        """Check if the server answers /models."""
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(f"{self._base_url}/models", headers=self._headers)
                return resp.status_code == 200
        except (httpx.HTTPError, OSError) as e:
            logger.debug("OpenAI-compatible availability check failed: %s", e)
            return False
