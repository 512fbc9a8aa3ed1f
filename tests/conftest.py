"""
Pytest Configuration and Shared Fixtures

Provides fixtures for testing sbvc components.
"""

from pathlib import Path
from typing import Callable, Generator

import pytest

from sbvc import HistoryConfig, VersionHistory


@pytest.fixture
def tracked_file(tmp_path: Path) -> Path:
    """A tracked file seeded with three lines."""
    path = tmp_path / "notes.txt"
    path.write_text("alpha\nbeta\ngamma\n")
    return path


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "notes.sbvc"


@pytest.fixture
def history(store_path: Path, tracked_file: Path) -> Generator[VersionHistory, None, None]:
    """A fresh history over ``tracked_file``."""
    h = VersionHistory.create(store_path, tracked_file)
    yield h
    h.close()


@pytest.fixture
def make_history(tmp_path: Path) -> Callable[..., VersionHistory]:
    """Factory for histories with a given seed and granularity."""

    def _make(seed: str = "", granularity: str = "line", name: str = "doc") -> VersionHistory:
        tracked = tmp_path / f"{name}.txt"
        tracked.write_text(seed)
        return VersionHistory.create(
            tmp_path / f"{name}.sbvc",
            tracked,
            config=HistoryConfig(granularity=granularity),
        )

    return _make


@pytest.fixture
def committed_history(history: VersionHistory, tracked_file: Path) -> VersionHistory:
    """History with a small tree.

    1 (root) -> 2 -> 3
                 \\-> 4
    current = 4
    """
    tracked_file.write_text("alpha\nbeta\ngamma\ndelta\n")
    history.commit()
    tracked_file.write_text("alpha\nBETA\ngamma\ndelta\n")
    history.commit()
    history.checkout(2)
    tracked_file.write_text("alpha\nbeta\ngamma\ndelta\nepsilon\n")
    history.commit()
    return history
