from __future__ import annotations

import importlib.machinery
import importlib.util
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from .core import Orchestrator, Task
from .errors import ChoreError
from .logging import configure, get_logger


app = typer.Typer(add_completion=False, help="Run tasks declared in a chorefile")
log = get_logger("chore.cli")


def load_config(path: str | Path) -> dict:
    p = Path(path)
    with open(p, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise typer.BadParameter(
            f"{p} must contain a mapping of argument names to values",
            param_hint="--config",
        )
    return data


def parse_args(pairs: List[str]) -> Dict[str, Any]:
    """Parse ``key=value`` pairs; values are read as YAML scalars."""
    out: Dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise typer.BadParameter(f"expected key=value, got {pair!r}", param_hint="--arg")
        try:
            value = yaml.safe_load(raw) if raw else ""
        except yaml.YAMLError:
            value = raw
        out[key] = value
    return out


def load_chorefile(path: str | Path) -> Orchestrator:
    """Import a task file and return the Orchestrator it defines.

    The first module-level Orchestrator wins; otherwise every function
    decorated with ``chore.task`` is registered on a fresh one.
    """
    p = Path(path).resolve()
    if not p.is_file():
        raise FileNotFoundError(f"Task file not found: {p}")
    module_name = f"chorefile_{p.stem}"
    # Any filename loads as Python source, "Chorefile" included
    loader = importlib.machinery.SourceFileLoader(module_name, str(p))
    spec = importlib.util.spec_from_file_location(module_name, p, loader=loader)
    mod = importlib.util.module_from_spec(spec)

    # The task file may import helpers next to it while it executes
    folder = str(p.parent)
    added = folder not in sys.path
    if added:
        sys.path.insert(0, folder)
    try:
        spec.loader.exec_module(mod)
    finally:
        if added and folder in sys.path:
            sys.path.remove(folder)

    members = list(vars(mod).values())
    for obj in members:
        if isinstance(obj, Orchestrator):
            return obj
    runner = Orchestrator(name=p.stem)
    for obj in members:
        tagged = getattr(obj, "_chore_task", None)
        if isinstance(tagged, Task):
            runner.add(tagged)
    return runner


def _open_runner(file: str) -> Orchestrator:
    try:
        runner = load_chorefile(file)
    except (FileNotFoundError, ChoreError) as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    if not len(runner.tasks):
        typer.echo(
            f"No tasks found in {file}. Register them on an Orchestrator or decorate functions with @task().",
            err=True,
        )
        raise typer.Exit(code=1)
    return runner


@app.command("list")
def list_tasks(
    file: str = typer.Option("chorefile.py", "--file", "-f", help="Path to the task file"),
):
    """List registered tasks."""
    configure()
    runner = _open_runner(file)
    typer.echo("Registered tasks:")
    for name in runner.tasks.names():
        deps: List[str] = []
        for t in runner.tasks.get(name):
            deps.extend(d for d in t.dependencies if d not in deps)
        suffix = f" (after: {', '.join(deps)})" if deps else ""
        typer.echo(f"- {name}{suffix}")


@app.command("run")
def run_task(
    name: str = typer.Argument(..., help="Task name to run"),
    file: str = typer.Option("chorefile.py", "--file", "-f", help="Path to the task file"),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="YAML file with task arguments"),
    arg: Optional[List[str]] = typer.Option(None, "--arg", "-a", help="Task argument as key=value"),
    log_level: Optional[str] = typer.Option(None, help="Override CHORE_LOG_LEVEL"),
):
    """Run a task and everything it depends on."""
    configure(log_level)
    arguments: Dict[str, Any] = load_config(config) if config else {}
    arguments.update(parse_args(arg or []))
    runner = _open_runner(file)
    try:
        result = runner.execute(name, arguments)
    except ChoreError as e:
        log.error("%s", e)
        typer.echo(str(e), err=True)
        raise typer.Exit(code=1)
    if result is not None:
        typer.echo(result)


def main():  # pragma: no cover
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
