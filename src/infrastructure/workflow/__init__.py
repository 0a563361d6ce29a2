"""Orchestration graph - LangGraph."""

from src.infrastructure.workflow.cancellation import CancellationToken, RunCancelled
from src.infrastructure.workflow.graph import (
    build_orchestration_graph,
    compile_orchestration_graph,
    recursion_limit_for,
)

__all__ = [
    "CancellationToken",
    "RunCancelled",
    "build_orchestration_graph",
    "compile_orchestration_graph",
    "recursion_limit_for",
]
