"""Small task runner with lazy file pipelines.

Provides Task and TaskGraph primitives, dependency-ordered execution with
named-argument binding, lazy file pipelines and a Typer CLI.
"""

from .core import Orchestrator, Param, Task, TaskGraph, task  # re-export for convenience
from .errors import (
    ChoreError,
    CyclicDependency,
    InvalidRegistration,
    MissingArguments,
    StepFailure,
    TaskNotFound,
)
from .files import FileEntity, RealFile, VirtualFile
from .pipeline import LazySequence, MapStep, Pipeline, Step
from .steps import CommandStep, PytestStep, WriteStep

__all__ = [
    "Orchestrator",
    "Param",
    "Task",
    "TaskGraph",
    "task",
    "ChoreError",
    "CyclicDependency",
    "InvalidRegistration",
    "MissingArguments",
    "StepFailure",
    "TaskNotFound",
    "FileEntity",
    "RealFile",
    "VirtualFile",
    "LazySequence",
    "MapStep",
    "Pipeline",
    "Step",
    "CommandStep",
    "PytestStep",
    "WriteStep",
]
