"""Classification of the differences between two tree snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field

from .scanner import TreeSnapshot


@dataclass
class ChangeSet:
    """Result of comparing an old snapshot with a new one.

    A path appears in at most one list. Unchanged files appear in none.
    """

    updated: list[str] = field(default_factory=list)
    new: list[str] = field(default_factory=list)
    removed_files: list[str] = field(default_factory=list)
    removed_directories: list[str] = field(default_factory=list)
    version: str | None = None

    @property
    def has_changes(self) -> bool:
        """Check if there are any changes."""
        return bool(
            self.updated or self.new or self.removed_files or self.removed_directories
        )

    @property
    def total_changes(self) -> int:
        """Total number of classified paths."""
        return (
            len(self.updated)
            + len(self.new)
            + len(self.removed_files)
            + len(self.removed_directories)
        )

    def all_paths(self) -> list[str]:
        return self.updated + self.new + self.removed_files + self.removed_directories


def reconcile(
    old: TreeSnapshot,
    new: TreeSnapshot,
    version: str | None = None,
) -> ChangeSet:
    """
    Classify every path found in either snapshot.

    Args:
        old: Snapshot of the previous release
        new: Snapshot of the release being patched to
        version: Release version tag, when packaging is requested

    Returns:
        ChangeSet with each list sorted by relative path
    """
    changes = ChangeSet(version=version)

    for path in sorted(set(old.entries) | set(new.entries)):
        old_entry = old.get(path)
        new_entry = new.get(path)

        if new_entry is not None and new_entry.is_file:
            if old.is_file(path):
                if old_entry.identity != new_entry.identity:
                    changes.updated.append(path)
            else:
                # Absent before, or a directory replaced by a file
                changes.new.append(path)
        elif old_entry is not None and new_entry is None:
            if old_entry.is_file:
                changes.removed_files.append(path)
            else:
                changes.removed_directories.append(path)
        # Otherwise the path is a directory in the new tree: its files are
        # classified on their own and the skeleton ships in the archive

    return changes
