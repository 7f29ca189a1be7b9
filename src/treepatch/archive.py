"""Staging and archiving of new files for Treepatch."""

from __future__ import annotations

import gzip
import logging
import os
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path

from . import DEFAULT_COMPRESSION_LEVEL
from .reconciler import ChangeSet
from .scanner import TreeSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ArchiveStats:
    """Statistics from building an archive."""

    directories: int = 0
    files: int = 0
    bytes_written: int = 0  # Uncompressed file content

    @property
    def total_entries(self) -> int:
        return self.directories + self.files


def resolve_compression_level(value: object) -> int:
    """Return value as a gzip level in [0, 9], or the default level."""
    level: int | None = None
    if isinstance(value, int) and not isinstance(value, bool):
        level = value
    elif isinstance(value, str):
        try:
            level = int(value.strip())
        except ValueError:
            level = None

    if level is None or not 0 <= level <= 9:
        logger.warning(
            "Invalid compression level %r, using %d", value, DEFAULT_COMPRESSION_LEVEL
        )
        return DEFAULT_COMPRESSION_LEVEL
    return level


def stage_new_files(
    new_snapshot: TreeSnapshot,
    staging_root: Path,
    changes: ChangeSet,
) -> int:
    """
    Fill staging_root with what the archive should contain.

    The full directory skeleton of the new tree is recreated, then every
    file classified as new is copied in with its mode bits.

    Returns:
        Number of files copied
    """
    staging_root.mkdir(parents=True, exist_ok=True)

    for entry in new_snapshot.directories():
        (staging_root / entry.path).mkdir(parents=True, exist_ok=True)

    for relative_path in changes.new:
        target = staging_root / relative_path
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(new_snapshot.root / relative_path, target)

    return len(changes.new)


def build_archive(source_root: Path, archive_path: Path, level: object) -> ArchiveStats:
    """
    Write source_root as a gzip-compressed tar archive.

    Entries are added in sorted relative-path order, with explicit
    directory entries so empty directories survive. Owner fields and the
    gzip header timestamp are fixed so identical trees give identical bytes.
    The tar stream is compressed and written to disk as it is produced.

    Args:
        source_root: Directory whose contents are archived (not the root itself)
        archive_path: Output file
        level: Requested gzip level; invalid values fall back to the default

    Returns:
        ArchiveStats with entry counts
    """
    compresslevel = resolve_compression_level(level)
    stats = ArchiveStats()
    archive_path.parent.mkdir(parents=True, exist_ok=True)

    with open(archive_path, "wb") as raw:
        with gzip.GzipFile(
            filename="", mode="wb", compresslevel=compresslevel, fileobj=raw, mtime=0
        ) as gz:
            with tarfile.open(fileobj=gz, mode="w|", format=tarfile.GNU_FORMAT) as tar:
                for path in _sorted_entries(source_root):
                    arcname = path.relative_to(source_root).as_posix()
                    info = tar.gettarinfo(str(path), arcname=arcname)
                    _normalize_owner(info)
                    if info.isdir():
                        tar.addfile(info)
                        stats.directories += 1
                    else:
                        with open(path, "rb") as f:
                            tar.addfile(info, f)
                        stats.files += 1
                        stats.bytes_written += info.size

    logger.info(
        "Archive %s: %d directories, %d files (level %d)",
        archive_path, stats.directories, stats.files, compresslevel,
    )
    return stats


def list_archive(archive_path: Path) -> list[str]:
    """Names of the entries in an archive, in stored order."""
    with tarfile.open(archive_path, mode="r:gz") as tar:
        return tar.getnames()


def _sorted_entries(root: Path) -> list[Path]:
    """Every directory and regular file under root, sorted by relative path."""
    entries: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        base = Path(dirpath)
        for name in dirnames:
            if not (base / name).is_symlink():
                entries.append(base / name)
        for name in filenames:
            path = base / name
            if path.is_file() and not path.is_symlink():
                entries.append(path)
    return sorted(entries, key=lambda p: p.relative_to(root).as_posix())


def _normalize_owner(info: tarfile.TarInfo) -> None:
    info.uid = 0
    info.gid = 0
    info.uname = ""
    info.gname = ""
    if info.isdir():
        info.mtime = 0
