"""Exceptions raised by the task graph, the runner and pipeline steps."""

from __future__ import annotations

from typing import Iterable, Sequence


ACCEPTED_SHAPES = (
    "task(str name, callable body)",
    "task(str name, list task_names)",
    "task(str name, list dependencies, callable body)",
)


class ChoreError(Exception):
    """Base class for every error raised by chore."""


class TaskNotFound(ChoreError, LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Task not found: {name}")

    def __str__(self) -> str:
        # LookupError would otherwise repr() the message
        return self.args[0]


class CyclicDependency(ChoreError, ValueError):
    def __init__(self, path: Sequence[str]):
        self.path = list(path)
        super().__init__("Cycle detected in task dependencies: " + " -> ".join(self.path))


class MissingArguments(ChoreError, TypeError):
    """A task parameter has neither a supplied value nor a default."""

    def __init__(self, task_name: str, synopsis: str, missing: Iterable[str] = ()):
        self.task_name = task_name
        self.synopsis = synopsis
        self.missing = list(missing)
        msg = f"Missing arguments for task {task_name!r}"
        if self.missing:
            msg += f": {', '.join(self.missing)}"
        super().__init__(f"{msg} (expected {synopsis})")


class InvalidRegistration(ChoreError, TypeError):
    def __init__(self, shape: str):
        self.shape = shape
        super().__init__(
            f"Invalid arguments given to task(): got {shape}. It accepts one of:\n"
            + "\n".join(f"* {s}" for s in ACCEPTED_SHAPES)
        )


class StepFailure(ChoreError, RuntimeError):
    """An external command run by a pipeline step failed or could not start."""

    def __init__(
        self,
        message: str,
        command: Sequence[str] | None = None,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ):
        self.command = list(command) if command is not None else None
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        super().__init__(message)
