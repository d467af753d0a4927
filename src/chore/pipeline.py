"""Lazy file pipelines.

A ``Pipeline`` wraps an iterator of ``FileEntity`` objects. Each ``pipe`` call
stacks a ``Step`` on top and returns a new Pipeline; nothing runs until the
result is iterated. Pulling one file out of the last stage runs every stage
for that file before the next file is touched.
"""

from __future__ import annotations

from typing import (
    Any,
    Callable,
    Iterable,
    Iterator,
    List,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from .files import FileEntity, as_file
from .logging import get_logger


log = get_logger("chore.pipeline")


class LazySequence:
    """Single-pass iterator applying ``transform`` to each pulled element.

    The transform runs at most once per element and only when that element is
    requested. Once exhausted the sequence stays exhausted.
    """

    def __init__(self, source: Iterable[Any], transform: Callable[[Any], Any]):
        self._source = iter(source)
        self._transform = transform

    def __iter__(self) -> "LazySequence":
        return self

    def __next__(self) -> Any:
        item = next(self._source)
        return self._transform(item)


@runtime_checkable
class Step(Protocol):
    def apply(self, files: Iterable[FileEntity]) -> Iterator[FileEntity]:
        ...


class MapStep:
    """Step running ``fn(file)`` on every file.

    ``fn`` may return the same file, a replacement FileEntity or None (keep
    the file it was given).
    """

    def __init__(self, fn: Callable[[FileEntity], Optional[FileEntity]]):
        self.fn = fn

    def _call(self, file: FileEntity) -> FileEntity:
        result = self.fn(file)
        return file if result is None else result

    def apply(self, files: Iterable[FileEntity]) -> Iterator[FileEntity]:
        return LazySequence(files, self._call)


StepLike = Union[Step, Callable[[Iterable[FileEntity]], Iterable[FileEntity]]]


class Pipeline:
    def __init__(self, files: Iterable[FileEntity]):
        self._files: Iterator[FileEntity] = iter(files)

    @classmethod
    def from_handles(cls, handles: Iterable[Any]) -> "Pipeline":
        """Lazily map raw handles (paths, DirEntry, ...) to RealFile."""
        return cls(LazySequence(handles, as_file))

    def pipe(self, step: StepLike) -> "Pipeline":
        if isinstance(step, Step):
            stage = step.apply(self._files)
            label = type(step).__name__
        elif callable(step):
            stage = step(self._files)
            label = getattr(step, "__name__", repr(step))
        else:
            raise TypeError(f"Expected a Step or callable, got {step!r}")
        log.debug("Piped step %s", label)
        return Pipeline(stage)

    def map(self, fn: Callable[[FileEntity], Optional[FileEntity]]) -> "Pipeline":
        return self.pipe(MapStep(fn))

    def __iter__(self) -> Iterator[FileEntity]:
        return self._files

    def __next__(self) -> FileEntity:
        return next(self._files)

    def collect(self) -> List[FileEntity]:
        return list(self._files)

    def run(self) -> int:
        """Drain the pipeline and return how many files went through it."""
        count = 0
        for _ in self._files:
            count += 1
        log.info("Pipeline processed %d file(s)", count)
        return count
