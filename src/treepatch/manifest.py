"""Manifest file management for Treepatch."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from . import MANIFEST_FILE
from .reconciler import ChangeSet


class PatchManifest(BaseModel):
    """Persisted record of a ChangeSet."""

    version: str | None = None  # Only set when the run is packaged
    updated: list[str] = Field(default_factory=list)
    new: list[str] = Field(default_factory=list)
    removed_directories: list[str] = Field(default_factory=list)
    removed_files: list[str] = Field(default_factory=list)

    def to_changes(self) -> ChangeSet:
        return ChangeSet(
            updated=list(self.updated),
            new=list(self.new),
            removed_files=list(self.removed_files),
            removed_directories=list(self.removed_directories),
            version=self.version,
        )


def get_manifest_path(work_dir: Path) -> Path:
    """Get the manifest file path."""
    return work_dir / MANIFEST_FILE


def manifest_from_changes(changes: ChangeSet) -> PatchManifest:
    return PatchManifest(
        version=changes.version,
        updated=list(changes.updated),
        new=list(changes.new),
        removed_directories=list(changes.removed_directories),
        removed_files=list(changes.removed_files),
    )


def load_manifest(manifest_path: Path) -> PatchManifest | None:
    """Load a manifest file.

    Returns None if file doesn't exist.
    """
    if not manifest_path.exists():
        return None

    with open(manifest_path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return PatchManifest.model_validate(data)


def save_manifest(manifest: PatchManifest, manifest_path: Path) -> None:
    """Save a manifest file.

    The four path lists are always written, empty or not. ``version`` is
    written only when present.
    """
    manifest_path.parent.mkdir(parents=True, exist_ok=True)

    with open(manifest_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(
            manifest.model_dump(exclude_none=True),
            f,
            sort_keys=False,
            default_flow_style=False,
        )
