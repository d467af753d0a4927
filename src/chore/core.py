from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Union,
)

from .errors import (
    CyclicDependency,
    InvalidRegistration,
    MissingArguments,
    TaskNotFound,
)
from .files import VirtualFile, expand_globs
from .logging import get_logger
from .pipeline import Pipeline


class _Required:
    def __repr__(self) -> str:
        return "REQUIRED"


@dataclass(frozen=True)
class Param:
    """A named parameter of a task body, with an optional default."""

    REQUIRED = _Required()

    name: str
    default: Any = REQUIRED
    kind: Any = inspect.Parameter.POSITIONAL_OR_KEYWORD

    @property
    def required(self) -> bool:
        return self.default is Param.REQUIRED

    def __str__(self) -> str:
        if self.required:
            return self.name
        return f"{self.name}={self.default!r}"


# Explicit parameter declarations: "name", ("name", default) or Param
ParamSpec = Union[str, Tuple[str, Any], Param]


def params_from_signature(body: Callable[..., Any]) -> Tuple[Tuple[Param, ...], bool]:
    """Read the parameters of ``body`` once, at registration time.

    Returns the bindable parameters and whether the body takes ``**kwargs``.
    """
    try:
        sig = inspect.signature(body)
    except (TypeError, ValueError):
        return (), False
    params: List[Param] = []
    var_keyword = False
    for p in sig.parameters.values():
        if p.kind is inspect.Parameter.VAR_KEYWORD:
            var_keyword = True
            continue
        if p.kind is inspect.Parameter.VAR_POSITIONAL:
            continue
        default = Param.REQUIRED if p.default is inspect.Parameter.empty else p.default
        params.append(Param(p.name, default, p.kind))
    return tuple(params), var_keyword


def _normalize_params(specs: Iterable[ParamSpec]) -> Tuple[Param, ...]:
    out: List[Param] = []
    for spec in specs:
        if isinstance(spec, Param):
            out.append(spec)
        elif isinstance(spec, str):
            out.append(Param(spec))
        elif isinstance(spec, tuple) and len(spec) == 2 and isinstance(spec[0], str):
            out.append(Param(spec[0], spec[1]))
        else:
            raise InvalidRegistration(f"parameter declaration {spec!r}")
    return tuple(out)


def _noop() -> None:
    return None


@dataclass(frozen=True)
class Task:
    name: str
    dependencies: Tuple[str, ...] = ()
    body: Callable[..., Any] = _noop
    params: Tuple[Param, ...] = ()
    var_keyword: bool = False

    @classmethod
    def create(
        cls,
        name: str,
        dependencies: Sequence[str] = (),
        body: Callable[..., Any] = _noop,
        params: Optional[Iterable[ParamSpec]] = None,
    ) -> "Task":
        if params is None:
            resolved, var_keyword = params_from_signature(body)
        else:
            resolved, var_keyword = _normalize_params(params), False
        return cls(name, tuple(dependencies), body, resolved, var_keyword)

    @property
    def synopsis(self) -> str:
        return f"{self.name}({', '.join(str(p) for p in self.params)})"

    def bind(self, arguments: Dict[str, Any]) -> Tuple[List[Any], Dict[str, Any]]:
        """Match ``arguments`` against the declared parameters.

        A key present in ``arguments`` wins (even when its value is None),
        then the declared default. Raises MissingArguments otherwise.
        """
        args: List[Any] = []
        kwargs: Dict[str, Any] = {}
        missing: List[str] = []
        for p in self.params:
            if p.name in arguments:
                value = arguments[p.name]
            elif not p.required:
                value = p.default
            else:
                missing.append(p.name)
                continue
            if p.kind is inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[p.name] = value
        if missing:
            raise MissingArguments(self.name, self.synopsis, missing)
        if self.var_keyword:
            declared = {p.name for p in self.params}
            kwargs.update({k: v for k, v in arguments.items() if k not in declared})
        return args, kwargs


class TaskGraph:
    """Insertion-ordered registry of tasks.

    Registering a name twice stacks the second task after the first; both
    take part in resolution.
    """

    def __init__(self, tasks: Iterable[Task] = ()):
        self._tasks: List[Task] = list(tasks)

    def push(self, task: Task) -> Task:
        self._tasks.append(task)
        return task

    def register(
        self,
        name: str,
        dependencies: Sequence[str] = (),
        body: Callable[..., Any] = _noop,
        params: Optional[Iterable[ParamSpec]] = None,
    ) -> Task:
        return self.push(Task.create(name, dependencies, body, params))

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator[Task]:
        return iter(self._tasks)

    def __contains__(self, name: object) -> bool:
        return any(t.name == name for t in self._tasks)

    def names(self) -> List[str]:
        return list(dict.fromkeys(t.name for t in self._tasks))

    def get(self, name: str) -> List[Task]:
        return [t for t in self._tasks if t.name == name]

    def resolve(self, name: str) -> List[Task]:
        """Tasks to run for ``name``, dependencies first, each exactly once."""
        order: List[Task] = []
        done: set[str] = set()
        chain: List[str] = []
        in_progress: set[str] = set()
        # Frames of [name, tasks, task index, dependency index]
        stack: List[list] = []

        def enter(current: str) -> None:
            if current in in_progress:
                start = chain.index(current)
                raise CyclicDependency(chain[start:] + [current])
            if current in done:
                return
            tasks = self.get(current)
            if not tasks:
                raise TaskNotFound(current)
            chain.append(current)
            in_progress.add(current)
            stack.append([current, tasks, 0, 0])

        enter(name)
        while stack:
            frame = stack[-1]
            current, tasks, ti, di = frame
            if ti == len(tasks):
                stack.pop()
                chain.pop()
                in_progress.discard(current)
                done.add(current)
                continue
            t = tasks[ti]
            if di < len(t.dependencies):
                frame[3] = di + 1
                enter(t.dependencies[di])
                continue
            order.append(t)
            frame[2] = ti + 1
            frame[3] = 0
        return order

    resolve_execution_order = resolve


class Orchestrator:
    """Registers tasks, runs them in dependency order and builds file pipelines."""

    def __init__(self, graph: Optional[TaskGraph] = None, name: str = "chore"):
        self.name = name
        self._graph = graph if graph is not None else TaskGraph()
        self.logger = get_logger(f"chore.core.{name}")

    @property
    def tasks(self) -> TaskGraph:
        return self._graph

    def get_task_graph(self) -> TaskGraph:
        return self._graph

    # Registration

    def register_simple(self, name: str, body: Callable[..., Any]) -> Task:
        return self.register(name, (), body)

    def register_alias(self, name: str, dependencies: Sequence[str]) -> Task:
        return self.register(name, dependencies, _noop)

    def register(
        self,
        name: str,
        dependencies: Sequence[str],
        body: Callable[..., Any],
        params: Optional[Iterable[ParamSpec]] = None,
    ) -> Task:
        if not isinstance(name, str) or not name:
            raise InvalidRegistration(f"task name {name!r}")
        if isinstance(dependencies, str):
            raise InvalidRegistration(f"dependencies {dependencies!r}")
        # Generators would be exhausted by the check below
        dependencies = tuple(dependencies)
        if not all(isinstance(d, str) for d in dependencies):
            raise InvalidRegistration(f"dependencies {dependencies!r}")
        if not callable(body):
            raise InvalidRegistration(f"body {body!r}")
        task = self._graph.register(name, dependencies, body, params)
        self.logger.debug(
            "Registered %s depends on [%s]", task.synopsis, ", ".join(task.dependencies)
        )
        return task

    def add(self, task: Task) -> Task:
        self._graph.push(task)
        return task

    def task(self, name: Any, dependencies: Any = None, body: Any = None) -> Task:
        """Register a task from one of three call shapes.

        - ``task("default", fn)``
        - ``task("default", ["minify", "build"])``
        - ``task("default", ["minify"], fn)``
        """
        if isinstance(name, str) and name:
            if body is None:
                if callable(dependencies):
                    return self.register_simple(name, dependencies)
                if isinstance(dependencies, (list, tuple)):
                    return self.register_alias(name, dependencies)
            elif isinstance(dependencies, (list, tuple)) and callable(body):
                return self.register(name, dependencies, body)
        shape = ", ".join(type(a).__name__ for a in (name, dependencies, body) if a is not None)
        raise InvalidRegistration(f"task({shape})")

    def define(
        self,
        name: Optional[str] = None,
        depends_on: Sequence[str] = (),
        params: Optional[Iterable[ParamSpec]] = None,
    ):
        """Decorator form of ``register``; the function is returned unchanged."""

        def deco(fn: Callable[..., Any]):
            self.register(name or fn.__name__, depends_on, fn, params)
            return fn

        return deco

    # Execution

    def execute(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Any:
        """Run ``name`` after its dependencies and return the target's result.

        Arguments are bound for every task before any body runs, so a missing
        argument leaves no partial side effects.
        """
        arguments = dict(arguments or {})
        order = self._graph.resolve(name)
        self.logger.info("Selected tasks: %s", " → ".join(t.name for t in order))
        planned = [(t, t.bind(arguments)) for t in order]

        result = None
        for t, (args, kwargs) in planned:
            self.logger.info("Run: %s", t.name)
            try:
                result = t.body(*args, **kwargs)
            except Exception:
                self.logger.exception("Task failed: %s", t.name)
                raise
            self.logger.debug("Task %s returned %r", t.name, result)
        return result

    # Pipelines

    def create(self, name: str) -> Pipeline:
        return Pipeline([VirtualFile(name)])

    def load(self, files: Any) -> Pipeline:
        """Wrap raw file handles into a lazy pipeline of RealFile objects."""
        iter_files = getattr(files, "iter_files", None)
        if callable(iter_files):
            files = iter_files()
        return Pipeline.from_handles(files)

    def src(self, *patterns: str) -> Pipeline:
        return self.load(expand_globs(patterns))


def task(
    name: Optional[str] = None,
    depends_on: Sequence[str] = (),
    params: Optional[Iterable[ParamSpec]] = None,
):
    """Decorator declaring a task on a module-level function.

    The function is tagged with a ``Task`` so a task file can be scanned for
    it; registration into an ``Orchestrator`` happens at discovery time.
    """

    def deco(fn: Callable[..., Any]):
        spec = Task.create(name or fn.__name__, depends_on, fn, params)
        setattr(fn, "_chore_task", spec)
        return fn

    return deco
