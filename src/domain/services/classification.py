"""Task-type classification tokens and their routing outcomes."""

from enum import Enum


class TaskType(str, Enum):
    """Fixed vocabulary the classifier must answer with."""

    ANALYSIS = "executeAnalysisTask"
    GENERATION = "executeGenerationTask"
    ANALYSIS_WITH_GENERATION = "executeAnalysisWithGeneration"
    IRRELEVANT = "handleIrrelevantQuery"


def parse_task_type(raw: str | None) -> TaskType:
    """Parse a classifier reply into a TaskType.

    Tolerates surrounding whitespace, quotes and backticks. Anything outside the
    vocabulary is IRRELEVANT (fail-safe).
    """
    if not raw:
        return TaskType.IRRELEVANT
    token = raw.strip().strip("`'\".").strip()
    try:
        return TaskType(token)
    except ValueError:
        return TaskType.IRRELEVANT
