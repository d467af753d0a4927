from __future__ import annotations

import sys
from pathlib import Path
from typing import List

import pytest

from chore import Orchestrator


@pytest.fixture
def runner() -> Orchestrator:
    return Orchestrator(name="test")


@pytest.fixture
def calls() -> List[str]:
    """Shared log that task bodies append their name to."""
    return []


@pytest.fixture
def make_files(tmp_path: Path):
    def _make(**contents: str) -> List[Path]:
        paths = []
        for stem, text in contents.items():
            p = tmp_path / f"{stem}.txt"
            p.write_text(text, encoding="utf-8")
            paths.append(p)
        return paths

    return _make


@pytest.fixture
def python() -> str:
    return sys.executable
