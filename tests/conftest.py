"""Shared test fixtures for treepatch."""

from pathlib import Path

import pytest
from click.testing import CliRunner

from tests.helpers import FakeDeltaProvider, write_tree


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def fake_provider() -> FakeDeltaProvider:
    return FakeDeltaProvider()


@pytest.fixture
def scenario_workspace(tmp_path: Path) -> Path:
    """
    A working directory holding the reference old/new trees.

    Structure:
        old/
        ├── a.txt        "hello"
        └── dir/b.txt    "x"
        new/
        ├── a.txt        "hello world"
        ├── c.txt        "new"
        └── dir/b.txt    "x"
    """
    write_tree(tmp_path / "old", {"a.txt": "hello", "dir/b.txt": "x"})
    write_tree(
        tmp_path / "new",
        {"a.txt": "hello world", "dir/b.txt": "x", "c.txt": "new"},
    )
    return tmp_path
