"""Tests for LLM adapters (Ollama, OpenAI-compatible)."""

import json

import pytest
from unittest.mock import AsyncMock, MagicMock, patch
import httpx

from src.domain.entities.task import ToolCall
from src.domain.ports.config import OllamaConfig, OpenAICompatibleConfig
from src.domain.ports.llm import LLMMessage
from src.infrastructure.llm.ollama import OllamaAdapter
from src.infrastructure.llm.openai_compatible import MalformedResponseError, OpenAICompatibleAdapter


def _http_response(status: int, payload) -> httpx.Response:
    request = httpx.Request("POST", "http://test/v1/chat/completions")
    if isinstance(payload, (dict, list)):
        return httpx.Response(status, json=payload, request=request)
    return httpx.Response(status, text=payload, request=request)


class TestOllamaAdapter:
    """Tests for OllamaAdapter."""

    @pytest.fixture
    def config(self):
        return OllamaConfig(host="http://localhost:11434", timeout=30)

    @pytest.fixture
    def adapter(self, config):
        return OllamaAdapter(config)

    @pytest.mark.asyncio
    async def test_generate_calls_client(self, adapter):
        """Generate calls ollama client with correct params."""
        mock_response = MagicMock()
        mock_response.message = MagicMock(content="Hello!", tool_calls=None)
        mock_response.model = "llama3.1"

        adapter._client.chat = AsyncMock(return_value=mock_response)

        result = await adapter.generate([LLMMessage(role="user", content="Hi")], model="llama3.1")

        assert result.content == "Hello!"
        assert result.model == "llama3.1"
        kwargs = adapter._client.chat.call_args.kwargs
        assert kwargs["messages"] == [{"role": "user", "content": "Hi"}]
        assert kwargs["options"]["temperature"] == 0.7

    @pytest.mark.asyncio
    async def test_chat_with_tools_parses_calls(self, adapter):
        """Tool calls from the ollama response become ToolCall with ids."""
        fn = MagicMock()
        fn.name = "readFile"
        fn.arguments = {"filePath": "a.py"}
        tc = MagicMock(function=fn)
        mock_response = MagicMock()
        mock_response.message = MagicMock(content="", tool_calls=[tc])
        mock_response.model = "m"
        adapter._client.chat = AsyncMock(return_value=mock_response)

        reply = await adapter.chat_with_tools(
            [LLMMessage(role="user", content="read it")],
            tools=[{"type": "function", "function": {"name": "readFile"}}],
            model="m",
        )

        assert reply.tool_calls == [ToolCall(name="readFile", id="call_0", arguments={"filePath": "a.py"})]
        assert adapter._client.chat.call_args.kwargs["tools"][0]["function"]["name"] == "readFile"

    @pytest.mark.asyncio
    async def test_chat_with_tools_string_arguments(self, adapter):
        mock_response = {
            "model": "m",
            "message": {
                "content": "",
                "tool_calls": [{"function": {"name": "listFiles", "arguments": '{"directoryPath": "src"}'}}],
            },
        }
        adapter._client.chat = AsyncMock(return_value=mock_response)
        reply = await adapter.chat_with_tools([LLMMessage(role="user", content="x")], tools=[])
        assert reply.tool_calls[0].arguments == {"directoryPath": "src"}

    @pytest.mark.asyncio
    async def test_tool_history_serialized(self, adapter):
        mock_response = MagicMock()
        mock_response.message = MagicMock(content="ok", tool_calls=None)
        mock_response.model = "m"
        adapter._client.chat = AsyncMock(return_value=mock_response)

        messages = [
            LLMMessage(role="assistant", content="", tool_calls=[ToolCall(name="readFile", id="c1", arguments={"filePath": "a"})]),
            LLMMessage(role="tool", content='{"success": true}', tool_call_id="c1", name="readFile"),
        ]
        await adapter.chat_with_tools(messages, tools=[])
        sent = adapter._client.chat.call_args.kwargs["messages"]
        assert sent[0]["tool_calls"] == [{"function": {"name": "readFile", "arguments": {"filePath": "a"}}}]
        assert sent[1]["tool_name"] == "readFile"

    @pytest.mark.asyncio
    async def test_errors_propagate(self, adapter):
        adapter._client.chat = AsyncMock(side_effect=RuntimeError("model not found"))
        with pytest.raises(RuntimeError):
            await adapter.chat_with_tools([LLMMessage(role="user", content="x")], tools=[])

    @pytest.mark.asyncio
    async def test_is_available_false_on_error(self, adapter):
        """is_available returns False on connection error."""
        with patch("httpx.AsyncClient") as mock_client:
            mock_client.return_value.__aenter__.return_value.get = AsyncMock(
                side_effect=httpx.ConnectError("Connection refused")
            )
            result = await adapter.is_available()

        assert result is False

    def test_no_configuration_error(self, adapter):
        assert adapter.configuration_error is None


class TestOpenAICompatibleAdapter:
    """Tests for OpenAICompatibleAdapter."""

    @pytest.fixture
    def config(self):
        return OpenAICompatibleConfig(base_url="http://test/v1", api_key="sk-test", timeout=30, max_tokens=256)

    @pytest.fixture
    def adapter(self, config):
        return OpenAICompatibleAdapter(config)

    def _mock_post(self, adapter, response):
        client = MagicMock()
        client.is_closed = False
        client.post = AsyncMock(return_value=response)
        adapter._client = client
        return client

    @pytest.mark.asyncio
    async def test_chat_with_tools_parses_tool_calls(self, adapter):
        payload = {
            "model": "gpt-test",
            "choices": [
                {
                    "message": {
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_abc",
                                "type": "function",
                                "function": {"name": "searchCode", "arguments": '{"query": "TODO"}'},
                            }
                        ],
                    }
                }
            ],
        }
        client = self._mock_post(adapter, _http_response(200, payload))

        reply = await adapter.chat_with_tools(
            [LLMMessage(role="user", content="find todos")],
            tools=[{"type": "function", "function": {"name": "searchCode"}}],
            model="gpt-test",
        )

        assert reply.content == ""
        assert reply.tool_calls == [ToolCall(name="searchCode", id="call_abc", arguments={"query": "TODO"})]
        body = client.post.call_args.kwargs["json"]
        assert body["tool_choice"] == "auto"
        assert body["max_tokens"] == 256
        assert body["model"] == "gpt-test"

    @pytest.mark.asyncio
    async def test_messages_converted_to_openai_format(self, adapter):
        client = self._mock_post(adapter, _http_response(200, {"choices": [{"message": {"content": "ok"}}]}))
        messages = [
            LLMMessage(role="system", content="sys"),
            LLMMessage(role="assistant", content="", tool_calls=[ToolCall(name="readFile", id="c1", arguments={"filePath": "a"})]),
            LLMMessage(role="tool", content='{"success": true}', tool_call_id="c1", name="readFile"),
        ]
        await adapter.chat_with_tools(messages, tools=[])
        sent = client.post.call_args.kwargs["json"]["messages"]
        assert sent[0] == {"role": "system", "content": "sys"}
        assert sent[1]["tool_calls"][0]["id"] == "c1"
        assert json.loads(sent[1]["tool_calls"][0]["function"]["arguments"]) == {"filePath": "a"}
        assert sent[2] == {"role": "tool", "content": '{"success": true}', "tool_call_id": "c1"}

    @pytest.mark.asyncio
    async def test_generate_returns_content(self, adapter):
        self._mock_post(adapter, _http_response(200, {"model": "m", "choices": [{"message": {"content": "hi"}}]}))
        result = await adapter.generate([LLMMessage(role="user", content="x")], model="m")
        assert result.content == "hi"

    @pytest.mark.asyncio
    async def test_http_error_raises(self, adapter):
        self._mock_post(adapter, _http_response(500, "upstream down"))
        with pytest.raises(httpx.HTTPStatusError):
            await adapter.generate([LLMMessage(role="user", content="x")])

    @pytest.mark.asyncio
    async def test_malformed_payload_raises(self, adapter):
        self._mock_post(adapter, _http_response(200, {"unexpected": True}))
        with pytest.raises(MalformedResponseError):
            await adapter.chat_with_tools([LLMMessage(role="user", content="x")], tools=[])

    def test_openai_without_key_reports_configuration_error(self):
        adapter = OpenAICompatibleAdapter(OpenAICompatibleConfig(api_key=""), require_api_key=True)
        assert adapter.configuration_error
        assert "API key" in adapter.configuration_error

    def test_lm_studio_without_key_is_fine(self):
        adapter = OpenAICompatibleAdapter(OpenAICompatibleConfig(api_key=""))
        assert adapter.configuration_error is None

    @pytest.mark.asyncio
    async def test_close(self, adapter):
        client = self._mock_post(adapter, None)
        client.aclose = AsyncMock()
        await adapter.close()
        client.aclose.assert_awaited_once()
        assert adapter._client is None
