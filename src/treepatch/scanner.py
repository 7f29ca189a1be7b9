"""Directory tree scanning for change detection in Treepatch."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

logger = logging.getLogger(__name__)


class EntryKind(StrEnum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class PathEntry:
    """A file or directory found under a scanned root."""

    path: str  # Relative path from the scan root, "/"-separated
    kind: EntryKind
    identity: str | None = None  # SHA256 of the content, files only

    @property
    def is_file(self) -> bool:
        return self.kind == EntryKind.FILE

    @property
    def is_dir(self) -> bool:
        return self.kind == EntryKind.DIRECTORY


@dataclass
class ScanStats:
    """Statistics from scanning a tree."""

    files_hashed: int = 0
    directories_processed: int = 0
    symlinks_skipped: int = 0
    errors_skipped: int = 0


@dataclass
class TreeSnapshot:
    """Every entry under one root, keyed by relative path."""

    root: Path
    entries: dict[str, PathEntry] = field(default_factory=dict)
    stats: ScanStats = field(default_factory=ScanStats)

    def __contains__(self, path: str) -> bool:
        return path in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PathEntry]:
        return iter(self.entries.values())

    def get(self, path: str) -> PathEntry | None:
        return self.entries.get(path)

    def paths(self) -> list[str]:
        """All relative paths, sorted."""
        return sorted(self.entries)

    def files(self) -> list[PathEntry]:
        return [self.entries[p] for p in self.paths() if self.entries[p].is_file]

    def directories(self) -> list[PathEntry]:
        return [self.entries[p] for p in self.paths() if self.entries[p].is_dir]

    def is_file(self, path: str) -> bool:
        entry = self.entries.get(path)
        return entry is not None and entry.is_file

    def is_dir(self, path: str) -> bool:
        entry = self.entries.get(path)
        return entry is not None and entry.is_dir


def compute_file_hash(filepath: Path) -> str:
    """Compute SHA256 hash of file contents."""
    h = hashlib.sha256()
    with open(filepath, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            h.update(chunk)
    return h.hexdigest()


def ensure_root(root: Path) -> bool:
    """Create root as an empty directory if it is missing.

    Returns True if the directory had to be created.
    """
    if root.is_dir():
        return False
    logger.warning("Directory %s not found! Creating...", root)
    root.mkdir(parents=True, exist_ok=True)
    return True


def scan_tree(root: Path) -> TreeSnapshot:
    """
    Scan a directory tree.

    Symbolic links are skipped. Entries that cannot be listed or read are
    logged and skipped so one unreadable file does not abort the run.

    Args:
        root: Root directory to scan. A missing root yields an empty snapshot.

    Returns:
        A TreeSnapshot with one entry per file and directory below root
    """
    snapshot = TreeSnapshot(root=root)
    if not root.is_dir():
        return snapshot

    _scan_directory(root, root, snapshot)
    return snapshot


def _relative(path: Path, root: Path) -> str:
    return path.relative_to(root).as_posix()


def _scan_directory(directory: Path, root: Path, snapshot: TreeSnapshot) -> None:
    """Recursively add the children of directory to the snapshot."""
    try:
        children = sorted(directory.iterdir())
    except OSError as e:
        logger.warning("Skipping unreadable directory %s: %s", directory, e)
        snapshot.stats.errors_skipped += 1
        return

    for child in children:
        # A listable but non-searchable directory fails here with EACCES
        try:
            is_symlink = child.is_symlink()
            is_dir = not is_symlink and child.is_dir()
            is_file = not is_symlink and not is_dir and child.is_file()
        except OSError as e:
            logger.warning("Skipping unreadable entry %s: %s", child, e)
            snapshot.stats.errors_skipped += 1
            continue

        if is_symlink:
            logger.debug("Skipping symlink %s", child)
            snapshot.stats.symlinks_skipped += 1
            continue

        relative_path = _relative(child, root)

        if is_dir:
            snapshot.stats.directories_processed += 1
            snapshot.entries[relative_path] = PathEntry(
                path=relative_path,
                kind=EntryKind.DIRECTORY,
            )
            _scan_directory(child, root, snapshot)
        elif is_file:
            try:
                file_hash = compute_file_hash(child)
            except OSError as e:
                logger.warning("Skipping unreadable file %s: %s", child, e)
                snapshot.stats.errors_skipped += 1
                continue
            snapshot.stats.files_hashed += 1
            snapshot.entries[relative_path] = PathEntry(
                path=relative_path,
                kind=EntryKind.FILE,
                identity=file_hash,
            )
        # Sockets, FIFOs and device nodes are not part of a patch set
