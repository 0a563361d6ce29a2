"""Progress event types streamed to clients."""

from enum import Enum


class ProgressEventType(str, Enum):
    """Event types emitted while a run executes."""

    PROGRESS = "progress"  # free-text status
    NODE = "node"  # graph node started
    TOOL = "tool"  # tool invoked
    ERROR = "error"
    DONE = "done"
