from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from .errors import StepFailure
from .files import FileEntity, RealFile
from .logging import get_logger
from .pipeline import LazySequence


log = get_logger("chore.steps")


class CommandStep:
    """Run an external command per file and keep its stdout as the new content.

    ``command`` is a list of arguments; ``{path}`` and ``{name}`` inside an
    argument are replaced by the file's absolute path and name. The command
    must exit with status 0, anything else aborts the iteration with
    ``StepFailure``.
    """

    def __init__(
        self,
        command: Sequence[str],
        timeout: Optional[float] = None,
        cwd: Optional[str | os.PathLike] = None,
        env: Optional[Dict[str, str]] = None,
    ):
        if isinstance(command, str):
            raise TypeError("command must be a list of arguments, not a string")
        self.command = list(command)
        self.timeout = timeout
        self.cwd = cwd
        self.env = env

    def build_command(self, file: FileEntity) -> List[str]:
        uses_path = any("{path}" in arg for arg in self.command)
        if uses_path and file.path is None:
            raise StepFailure(
                f"{type(self).__name__} needs a real file, got virtual file {file.name!r}"
            )
        path = str(file.path) if file.path else ""
        return [
            arg.replace("{path}", path).replace("{name}", file.name)
            for arg in self.command
        ]

    def run_command(self, args: List[str]) -> str:
        env = None
        if self.env is not None:
            env = dict(os.environ)
            env.update(self.env)
        log.debug("Run: %s", " ".join(args))
        try:
            proc = subprocess.run(
                args,
                check=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                timeout=self.timeout,
                cwd=self.cwd,
                env=env,
            )
        except subprocess.CalledProcessError as exc:
            log.error("Command failed with exit code %s: %s", exc.returncode, " ".join(args))
            raise StepFailure(
                f"Command exited with status {exc.returncode}: {' '.join(args)}",
                command=args,
                returncode=exc.returncode,
                stdout=exc.stdout,
                stderr=exc.stderr,
            ) from exc
        except subprocess.TimeoutExpired as exc:
            log.error("Command timed out after %ss: %s", self.timeout, " ".join(args))
            raise StepFailure(
                f"Command timed out after {self.timeout}s: {' '.join(args)}",
                command=args,
                stdout=_as_text(exc.stdout),
                stderr=_as_text(exc.stderr),
            ) from exc
        except OSError as exc:
            log.error("Command could not be started: %s (%s)", " ".join(args), exc)
            raise StepFailure(
                f"Command could not be started: {' '.join(args)}: {exc}",
                command=args,
            ) from exc
        return proc.stdout

    def _transform(self, file: FileEntity) -> FileEntity:
        file.content = self.run_command(self.build_command(file))
        return file

    def apply(self, files: Iterable[FileEntity]) -> Iterator[FileEntity]:
        return LazySequence(files, self._transform)


class PytestStep(CommandStep):
    """Run pytest with the current interpreter against each file."""

    def __init__(self, *extra_args: str, timeout: Optional[float] = None, cwd=None):
        super().__init__(
            [sys.executable, "-m", "pytest", "{path}", *extra_args],
            timeout=timeout,
            cwd=cwd,
        )


class WriteStep:
    """Write each file's content to ``directory`` (or back in place)."""

    def __init__(self, directory: Optional[str | os.PathLike] = None):
        self.directory = Path(directory) if directory is not None else None

    def _write(self, file: FileEntity) -> FileEntity:
        if self.directory is not None:
            target = self.directory / file.name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(file.content, encoding="utf-8")
        elif isinstance(file, RealFile):
            target = file.save()
        else:
            raise StepFailure(f"Virtual file {file.name!r} has no path; give WriteStep a directory")
        log.debug("Wrote %s", target)
        return file

    def apply(self, files: Iterable[FileEntity]) -> Iterator[FileEntity]:
        return LazySequence(files, self._write)


def _as_text(data) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data
