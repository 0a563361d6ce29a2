"""Synthesizer agent - merges successful subtask results into one answer."""

import logging
import re
from dataclasses import dataclass

from src.domain.entities.task import SubTask, Task, WorkerResult
from src.domain.ports.llm import LLMMessage, ModelClientPort
from src.infrastructure.agents.llm_helpers import generate_with_retry
from src.infrastructure.agents.prompts import ROLE_TITLES, SYNTHESIS_PROMPT

logger = logging.getLogger(__name__)

NOTHING_TO_SYNTHESIZE = "No results available to synthesize."
EMPTY_SYNTHESIS = "The AI assistant generated an empty response. Please try your query again."
SECTION_SEPARATOR = "\n---\n\n"

_HEADING_RE = re.compile(r"^## .*?\n\n")


@dataclass(frozen=True)
class Synthesis:
    final_result: str
    error: str | None = None
    model_called: bool = False


def strip_heading(text: str) -> str:
    """Drop one leading '## Title' heading and the blank line after it."""
    return _HEADING_RE.sub("", text, count=1)


def _section_title(result_id: str, subtasks: dict[str, SubTask]) -> str:
    subtask = subtasks.get(result_id)
    if subtask is None:
        return result_id
    return subtask.description or ROLE_TITLES[subtask.type]


def build_sections(
    results: dict[str, WorkerResult],
    subtasks: list[SubTask] | None = None,
) -> list[str]:
    """'## <title>\\n\\n<result>\\n' for each successful, non-empty result."""
    by_id = {s.id: s for s in subtasks or []}
    return [
        f"## {_section_title(result_id, by_id)}\n\n{result.result}\n"
        for result_id, result in results.items()
        if result.success and result.result.strip()
    ]


async def synthesize(
    task: Task,
    results: dict[str, WorkerResult],
    llm: ModelClientPort,
    model: str,
    subtasks: list[SubTask] | None = None,
    run_error: str | None = None,
    temperature: float = 0.5,
) -> Synthesis:
    """Zero results: fixed message. One: returned as is. Two or more: one model call."""
    successful = {k: r for k, r in results.items() if r.success and r.result.strip()}

    if not successful:
        # Only a run-level error (e.g. a dependency cycle) fails the synthesis
        if run_error:
            return Synthesis(final_result=f"Could not complete the task: {run_error}", error=run_error)
        return Synthesis(final_result=NOTHING_TO_SYNTHESIZE)

    if len(successful) == 1:
        only = next(iter(successful.values()))
        return Synthesis(final_result=strip_heading(only.result))

    combined = SECTION_SEPARATOR.join(build_sections(successful, subtasks))
    user_prompt = (
        f"Original request: {task.query}\n\n"
        f"Task results to synthesize:\n\n{combined}\n\n"
        "Please synthesize these results into a unified response."
    )
    messages = [
        LLMMessage(role="system", content=SYNTHESIS_PROMPT),
        LLMMessage(role="user", content=user_prompt),
    ]
    try:
        response = await generate_with_retry(llm, messages, model, temperature)
    except Exception as e:
        logger.warning("Synthesis call failed: %s", e, exc_info=True)
        return Synthesis(
            final_result=f"Failed to synthesize results: {e}",
            error=f"Synthesis failed: {e}",
            model_called=True,
        )

    content = (response.content or "").strip()
    if not content:
        logger.warning("Synthesis model returned an empty response")
        return Synthesis(final_result=EMPTY_SYNTHESIS, error="Empty response from synthesis model", model_called=True)

    logger.info("Synthesis complete (%d chars from %d results)", len(content), len(successful))
    return Synthesis(final_result=content, model_called=True)
