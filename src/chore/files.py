"""In-memory file entities flowing through a pipeline.

A ``RealFile`` is backed by a path on disk and reads it lazily, a
``VirtualFile`` only has a name. Both expose ``name`` and a writable
``content`` so steps can treat them the same way.
"""

from __future__ import annotations

import glob
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable, List, Optional


class FileEntity(ABC):
    """Common surface of real and virtual files."""

    path: Optional[Path] = None

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def content(self) -> str:
        ...

    @content.setter
    @abstractmethod
    def content(self, value: str) -> None:
        ...

    @property
    def is_virtual(self) -> bool:
        return self.path is None


class RealFile(FileEntity):
    def __init__(self, path: str | os.PathLike, encoding: str = "utf-8"):
        self.path = Path(os.fspath(path)).absolute()
        self.encoding = encoding
        self._content: Optional[str] = None

    @property
    def name(self) -> str:
        return self.path.name

    @property
    def loaded(self) -> bool:
        return self._content is not None

    @property
    def content(self) -> str:
        if self._content is None:
            self._content = self.path.read_text(encoding=self.encoding)
        return self._content

    @content.setter
    def content(self, value: str) -> None:
        self._content = value

    def save(self, target: str | os.PathLike | None = None) -> Path:
        """Write the in-memory content to ``target`` (defaults to own path)."""
        out = Path(target) if target is not None else self.path
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(self.content, encoding=self.encoding)
        return out

    def __repr__(self) -> str:
        return f"RealFile({str(self.path)!r})"


class VirtualFile(FileEntity):
    def __init__(self, name: str, content: str = ""):
        self._name = name
        self._content = content

    @property
    def name(self) -> str:
        return self._name

    @property
    def content(self) -> str:
        return self._content

    @content.setter
    def content(self, value: str) -> None:
        self._content = value

    def __repr__(self) -> str:
        return f"VirtualFile({self._name!r})"


def as_file(handle: Any) -> FileEntity:
    """Map a raw file handle to a FileEntity.

    Accepts FileEntity instances as-is, ``os.PathLike`` objects (including
    ``os.DirEntry``), plain strings and objects carrying a ``path`` attribute.
    """
    if isinstance(handle, FileEntity):
        return handle
    if isinstance(handle, (str, os.PathLike)):
        return RealFile(handle)
    path = getattr(handle, "path", None)
    if path is not None:
        return RealFile(path)
    raise TypeError(f"Cannot turn {handle!r} into a file: no resolvable path")


def expand_globs(patterns: Iterable[str]) -> List[Path]:
    """Expand glob patterns into a sorted, de-duplicated list of files.

    Patterns without wildcards are taken literally when the file exists.
    ``**`` matches across directories.
    """
    seen: set[Path] = set()
    paths: List[Path] = []
    for pat in patterns:
        pat = str(pat)
        if any(ch in pat for ch in "*?["):
            matches = [Path(m) for m in sorted(glob.glob(pat, recursive=True))]
        else:
            p = Path(pat)
            matches = [p] if p.is_file() else []
        for p in matches:
            if not p.is_file():
                continue
            if p not in seen:
                seen.add(p)
                paths.append(p)
    return paths
