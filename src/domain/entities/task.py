"""Task, subtask and worker result entities."""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SubtaskType(str, Enum):
    """Kinds of executable subtasks."""

    ANALYSIS = "analysis"
    GENERATION = "generation"
    TEST = "test"

    @classmethod
    def parse(cls, value: Any) -> "SubtaskType":
        """Map planner output to a subtask type. Unknown values are handled as analysis."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.ANALYSIS


class Task(BaseModel):
    """Root user request. Only requires_generation may change after creation."""

    query: str
    context: str | None = None
    requires_generation: bool = False


class SubTask(BaseModel):
    """One unit of LLM + tools work.

    Serializes with the planner's camelCase keys (dependsOn) so a parsed plan
    can be written back out unchanged.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    type: SubtaskType = SubtaskType.ANALYSIS
    description: str = ""
    task: str = ""
    context: str | None = None
    depends_on: list[str] = Field(default_factory=list, alias="dependsOn")

    def with_context(self, context: str | None) -> "SubTask":
        """Copy with resolved context attached (done right before execution)."""
        return self.model_copy(update={"context": context})

    def to_plan_dict(self) -> dict[str, Any]:
        """Dump in planner JSON shape."""
        data = self.model_dump(by_alias=True, exclude_none=True)
        data["type"] = self.type.value
        return data


class WorkerResult(BaseModel):
    """Outcome of one subtask."""

    success: bool
    result: str = ""
    error: str | None = None
    tools_used: list[str] = Field(default_factory=list)

    @classmethod
    def failure(cls, error: str, tools_used: list[str] | None = None) -> "WorkerResult":
        return cls(success=False, result="", error=error, tools_used=tools_used or [])


class ToolCall(BaseModel):
    """Structured tool request from the model. Lives inside one executor run."""

    name: str
    id: str = ""
    arguments: dict[str, Any] = Field(default_factory=dict)
