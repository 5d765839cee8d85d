"""In-repo task orchestrator.

Provides TaskSpec and TaskRegistry primitives, dependency resolution, a runner
with optional content caching, and a Typer CLI.
"""

from .core import RunResult, Runner, TaskRegistry, TaskSpec, resolve, run, task
from .errors import (
    CyclicDependencyError,
    DuplicateTaskError,
    InvalidTaskError,
    OrchestratorError,
    TaskNotFoundError,
)

__all__ = [
    "TaskSpec",
    "TaskRegistry",
    "Runner",
    "RunResult",
    "resolve",
    "run",
    "task",
    "OrchestratorError",
    "TaskNotFoundError",
    "CyclicDependencyError",
    "InvalidTaskError",
    "DuplicateTaskError",
]
