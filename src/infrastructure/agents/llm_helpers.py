"""LLM helpers: retry wrappers around the model client."""

from typing import Any

import httpx
from ollama import ResponseError
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from src.domain.ports.llm import LLMMessage, LLMResponse, ModelClientPort, ModelReply

# Transport-level failures worth another attempt. HTTP status errors and
# malformed payloads are not retried.
TRANSIENT_ERRORS = (
    TimeoutError,
    ConnectionError,
    httpx.TimeoutException,
    httpx.TransportError,
)


def is_transient(exc: BaseException) -> bool:
    """Transport failures, plus Ollama server errors (5xx). A 404 for an unknown model is final."""
    if isinstance(exc, ResponseError):
        return exc.status_code >= 500
    return isinstance(exc, TRANSIENT_ERRORS)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(is_transient),
    reraise=True,
)
async def _generate_impl(
    llm: ModelClientPort,
    messages: list[LLMMessage],
    model: str,
    temperature: float,
) -> LLMResponse:
    """Internal: generate with retry."""
    return await llm.generate(
        messages=messages,
        model=model,
        temperature=temperature,
    )


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(is_transient),
    reraise=True,
)
async def _chat_with_tools_impl(
    llm: ModelClientPort,
    messages: list[LLMMessage],
    tools: list[dict[str, Any]],
    model: str,
    temperature: float,
) -> ModelReply:
    """Internal: chat_with_tools with retry."""
    return await llm.chat_with_tools(
        messages=messages,
        tools=tools,
        model=model,
        temperature=temperature,
    )


async def generate_with_retry(
    llm: ModelClientPort,
    messages: list[LLMMessage],
    model: str,
    temperature: float = 0.7,
) -> LLMResponse:
    """Generate with retry on timeout/connection errors."""
    return await _generate_impl(llm, messages, model, temperature)


async def chat_with_tools_with_retry(
    llm: ModelClientPort,
    messages: list[LLMMessage],
    tools: list[dict[str, Any]],
    model: str,
    temperature: float = 0.3,
) -> ModelReply:
    """chat_with_tools with retry on timeout/connection errors.

    The message list is passed as a snapshot so a retried call sends the same turn.
    """
    return await _chat_with_tools_impl(llm, list(messages), tools, model, temperature)
