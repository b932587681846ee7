"""Shared test fixtures for dirmirror."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Callable

import pytest

if TYPE_CHECKING:
    from pathlib import Path

# 2020-09-13T12:26:40Z, whole seconds so every filesystem stores it exactly
BASE_TIME_NS = 1_600_000_000 * 1_000_000_000


def set_times(path: Path, mtime_ns: int) -> None:
    os.utime(path, ns=(mtime_ns, mtime_ns))


@pytest.fixture
def source(tmp_path: Path) -> Path:
    path = tmp_path / "source"
    path.mkdir()
    return path


@pytest.fixture
def destination(tmp_path: Path) -> Path:
    path = tmp_path / "destination"
    path.mkdir()
    return path


@pytest.fixture
def make_file() -> Callable[..., Path]:
    """Create a file (and its parents) with given content and modification time."""

    def _make(path: Path, content: str = "content", mtime_ns: int = BASE_TIME_NS) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
        set_times(path, mtime_ns)
        return path

    return _make


@pytest.fixture
def stamp() -> Callable[..., None]:
    """Set the modification time of existing entries (directories after filling them)."""

    def _stamp(*paths: Path, mtime_ns: int = BASE_TIME_NS) -> None:
        for path in paths:
            set_times(path, mtime_ns)

    return _stamp
