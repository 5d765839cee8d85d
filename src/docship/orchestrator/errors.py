from __future__ import annotations

from typing import Sequence


class OrchestratorError(Exception):
    """Base class for task registration and scheduling failures."""


class TaskNotFoundError(OrchestratorError, KeyError):
    def __init__(self, name: str, required_by: str | None = None):
        self.name = name
        self.required_by = required_by
        msg = f"Unknown task: {name}"
        if required_by:
            msg += f" (required by {required_by})"
        super().__init__(msg)

    def __str__(self) -> str:
        # KeyError would repr() the message
        return self.args[0]


class CyclicDependencyError(OrchestratorError, ValueError):
    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__("Cycle detected in task graph: " + " -> ".join(self.cycle))


class InvalidTaskError(OrchestratorError, ValueError):
    pass


class DuplicateTaskError(OrchestratorError, ValueError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Task already registered with a different definition: {name}")
