"""Helpers shared by the treepatch tests."""

import shutil
from pathlib import Path

import pytest

from treepatch.config import DirectoriesConfig, PatcherConfig
from treepatch.delta import DeltaComputationFailure, DeltaProvider

# Prefix written by FakeDeltaProvider so tests can recognise its output
FAKE_DELTA_HEADER = b"FAKEDELTA\n"

requires_xdelta3 = pytest.mark.skipif(
    shutil.which("xdelta3") is None, reason="xdelta3 is not installed"
)


class FakeDeltaProvider(DeltaProvider):
    """Records invocations and writes the new content behind a marker."""

    def __init__(self, fail_on: set[str] | None = None):
        self.calls: list[tuple[Path, Path, Path]] = []
        self.fail_on = fail_on or set()

    def compute_delta(self, old_file: Path, new_file: Path, output: Path) -> None:
        self.calls.append((old_file, new_file, output))
        if new_file.name in self.fail_on:
            raise DeltaComputationFailure(old_file, new_file, output, "forced failure")
        output.write_bytes(FAKE_DELTA_HEADER + new_file.read_bytes())


def write_tree(root: Path, files: dict[str, str], dirs: list[str] | None = None) -> Path:
    """Create files (relative path -> text) and empty directories under root."""
    root.mkdir(parents=True, exist_ok=True)
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    for relative_path in dirs or []:
        (root / relative_path).mkdir(parents=True, exist_ok=True)
    return root


def make_config(**kwargs) -> PatcherConfig:
    """Default config with the standard old/new/out layout."""
    kwargs.setdefault("directories", DirectoriesConfig())
    return PatcherConfig(**kwargs)
