"""Versioned output bundles for Treepatch."""

import logging
import shutil
from pathlib import Path

from . import PACKAGE_FILES_DIR, PACKAGE_PREFIX

logger = logging.getLogger(__name__)


def package_dir_name(version: str) -> str:
    """Directory name for a version, e.g. "1.2" -> "p1-2"."""
    return PACKAGE_PREFIX + version.replace(".", "-")


def clear_directory(directory: Path) -> None:
    """Remove everything inside directory, creating it if missing."""
    if directory.exists():
        shutil.rmtree(directory)
    directory.mkdir(parents=True, exist_ok=True)


def assemble_package(
    work_dir: Path,
    version: str,
    manifest_path: Path | None = None,
    out_root: Path | None = None,
    archive_path: Path | None = None,
) -> Path:
    """
    Bundle the artifacts of one run into ``p<version>/``.

    Any existing package for the same version is replaced. The manifest is
    moved into the package; the delta directory and archive are copied in
    and the standalone copies are then removed, leaving an empty out
    directory behind.

    Args:
        work_dir: Directory the package is created in
        version: Validated version tag
        manifest_path: Manifest to include, if one was written
        out_root: Delta output directory, if deltas were produced
        archive_path: Archive of new files, if one was built

    Returns:
        Path to the package directory
    """
    package_dir = work_dir / package_dir_name(version)
    if package_dir.exists():
        logger.info("Replacing existing package %s", package_dir)
    clear_directory(package_dir)

    if manifest_path is not None and manifest_path.exists():
        shutil.move(str(manifest_path), str(package_dir / manifest_path.name))

    if out_root is not None and out_root.is_dir():
        shutil.copytree(out_root, package_dir / PACKAGE_FILES_DIR)
        clear_directory(out_root)

    if archive_path is not None and archive_path.exists():
        shutil.copy2(archive_path, package_dir / archive_path.name)
        archive_path.unlink()

    logger.info("Package written to %s", package_dir)
    return package_dir
