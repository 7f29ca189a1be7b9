"""Errors that abort a Treepatch run."""

from pathlib import Path


class PatcherError(Exception):
    """Base class for errors that abort a patch run."""


class DirectoryOverlapError(PatcherError):
    """A directory that is cleared before the run overlaps an input tree."""

    def __init__(self, cleared: Path, source: Path):
        self.cleared = cleared
        self.source = source
        super().__init__(
            f"Refusing to clear {cleared}: it overlaps the input directory {source}"
        )
