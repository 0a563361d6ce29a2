"""Tolerant parser for planner JSON output.

Three stages, first success wins:
1. the whole reply as JSON
2. the first fenced code block
3. the first balanced top-level {...} span

Never raises. Returns Parsed or Malformed.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from src.domain.entities.task import SubTask, SubtaskType

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```")


@dataclass(frozen=True)
class Parsed:
    plan: str
    subtasks: list[SubTask] = field(default_factory=list)


@dataclass(frozen=True)
class Malformed:
    reason: str
    raw: str = ""


PlanParseResult = Parsed | Malformed


def _first_object_span(text: str) -> str | None:
    """First balanced {...} span, skipping braces inside strings."""
    start = text.find("{")
    if start == -1:
        return None
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[start : i + 1]
    return None


def _try_json(text: str | None) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return None


def extract_json_object(text: str) -> dict | None:
    """Run the three extraction stages, return the first dict found."""
    candidates = [text.strip()]
    fence = _FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1))
    candidates.append(_first_object_span(text))
    for candidate in candidates:
        data = _try_json(candidate)
        if isinstance(data, dict):
            return data
    return None


def _to_subtask(index: int, raw: Any) -> SubTask:
    if not isinstance(raw, dict):
        raise ValueError(f"subTasks[{index}] is not an object")
    task_text = str(raw.get("task") or raw.get("description") or "").strip()
    if not task_text:
        raise ValueError(f"subTasks[{index}] has no task")
    depends_on = raw.get("dependsOn") or []
    if not isinstance(depends_on, list):
        depends_on = [depends_on]
    return SubTask(
        id=str(raw.get("id") or f"task{index + 1}"),
        type=SubtaskType.parse(raw.get("type")),
        description=str(raw.get("description") or ""),
        task=task_text,
        context=raw.get("context") or None,
        depends_on=[str(d) for d in depends_on],
    )


def parse_plan(text: str | None, max_subtasks: int | None = None) -> PlanParseResult:
    """Parse planner reply into subtasks."""
    if not text or not text.strip():
        return Malformed(reason="Empty response from planner")
    data = extract_json_object(text)
    if data is None:
        logger.warning("Planner reply is not JSON: %s", text[:200])
        return Malformed(reason="Could not parse plan JSON", raw=text)

    raw_subtasks = data.get("subTasks")
    if not isinstance(raw_subtasks, list):
        return Malformed(reason="Plan has no subTasks list", raw=text)
    if max_subtasks is not None and len(raw_subtasks) > max_subtasks:
        return Malformed(reason=f"Plan has {len(raw_subtasks)} subtasks, limit is {max_subtasks}", raw=text)

    try:
        subtasks = [_to_subtask(i, item) for i, item in enumerate(raw_subtasks)]
    except ValueError as e:
        return Malformed(reason=str(e), raw=text)

    seen: set[str] = set()
    for subtask in subtasks:
        if subtask.id in seen:
            return Malformed(reason=f"Duplicate subtask id: {subtask.id}", raw=text)
        seen.add(subtask.id)

    return Parsed(plan=str(data.get("plan") or ""), subtasks=subtasks)
