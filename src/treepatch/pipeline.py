"""Patch generation pipeline orchestration for Treepatch."""

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from . import ARCHIVE_SUFFIX, STAGING_DIR
from .archive import ArchiveStats, build_archive, stage_new_files
from .config import PatcherConfig
from .delta import DeltaProvider, compute_deltas, get_delta_provider
from .errors import DirectoryOverlapError
from .manifest import get_manifest_path, manifest_from_changes, save_manifest
from .packager import assemble_package, clear_directory
from .reconciler import ChangeSet, reconcile
from .scanner import ensure_root, scan_tree

logger = logging.getLogger(__name__)


@dataclass
class RunStats:
    """Statistics from a patch run."""

    files_updated: int = 0
    files_new: int = 0
    files_removed: int = 0
    directories_removed: int = 0
    deltas_written: int = 0
    archive_entries: int = 0
    archive_bytes: int = 0
    entries_skipped: int = 0
    manifest_path: Path | None = None
    archive_path: Path | None = None
    package_dir: Path | None = None


class Patcher:
    """Orchestrates one patch run."""

    def __init__(
        self,
        config: PatcherConfig,
        work_dir: Path | None = None,
        provider: DeltaProvider | None = None,
        verbose: bool = False,
        console: Console | None = None,
    ):
        self.config = config
        self.work_dir = work_dir or Path.cwd()
        self.verbose = verbose
        self.console = console or Console()
        self._provider = provider

    @property
    def provider(self) -> DeltaProvider:
        """Lazy-load delta provider."""
        if self._provider is None:
            self._provider = get_delta_provider(self.config)
        return self._provider

    @property
    def old_root(self) -> Path:
        return self.work_dir / self.config.directories.old

    @property
    def new_root(self) -> Path:
        return self.work_dir / self.config.directories.new

    @property
    def out_root(self) -> Path:
        return self.work_dir / self.config.directories.out

    @property
    def staging_root(self) -> Path:
        return self.work_dir / STAGING_DIR

    @property
    def archive_path(self) -> Path:
        return self.work_dir / (self.config.archive_name + ARCHIVE_SUFFIX)

    def run(self) -> tuple[ChangeSet, RunStats]:
        """
        Run the pipeline: scan, classify, write deltas, archive, manifest, package.

        Returns:
            Tuple of (changes, stats)

        Raises:
            DirectoryOverlapError: if a directory cleared for output overlaps an input tree
            DeltaComputationFailure: if any delta cannot be produced
        """
        stats = RunStats()
        produce_patches = not self.config.manifest_only
        version = self.config.package_version

        ensure_root(self.old_root)
        ensure_root(self.new_root)

        if produce_patches:
            self._check_overlap()
            clear_directory(self.out_root)
            clear_directory(self.staging_root)

        old_snapshot = scan_tree(self.old_root)
        new_snapshot = scan_tree(self.new_root)
        logger.info(
            "Scanned %d old and %d new entries", len(old_snapshot), len(new_snapshot)
        )

        for snapshot in (old_snapshot, new_snapshot):
            stats.entries_skipped += (
                snapshot.stats.symlinks_skipped + snapshot.stats.errors_skipped
            )

        changes = reconcile(old_snapshot, new_snapshot, version=version)
        stats.files_updated = len(changes.updated)
        stats.files_new = len(changes.new)
        stats.files_removed = len(changes.removed_files)
        stats.directories_removed = len(changes.removed_directories)

        if produce_patches:
            stats.deltas_written = self._write_deltas(changes)

            stage_new_files(new_snapshot, self.staging_root, changes)
            archive_stats: ArchiveStats = build_archive(
                self.staging_root, self.archive_path, self.config.compression_level
            )
            shutil.rmtree(self.staging_root, ignore_errors=True)
            stats.archive_entries = archive_stats.total_entries
            stats.archive_bytes = archive_stats.bytes_written
            stats.archive_path = self.archive_path

        if self.config.writes_manifest:
            manifest_path = get_manifest_path(self.work_dir)
            save_manifest(manifest_from_changes(changes), manifest_path)
            stats.manifest_path = manifest_path

        if version is not None:
            stats.package_dir = assemble_package(
                self.work_dir,
                version,
                manifest_path=stats.manifest_path,
                out_root=self.out_root if produce_patches else None,
                archive_path=stats.archive_path,
            )
            if stats.manifest_path is not None:
                stats.manifest_path = stats.package_dir / stats.manifest_path.name
            if stats.archive_path is not None:
                stats.archive_path = stats.package_dir / stats.archive_path.name

        return changes, stats

    def _check_overlap(self) -> None:
        """Refuse to clear out/ or tmp/ when either holds or sits inside an input tree."""
        sources = [self.old_root.resolve(), self.new_root.resolve()]
        for cleared in (self.out_root.resolve(), self.staging_root.resolve()):
            for source in sources:
                if cleared.is_relative_to(source) or source.is_relative_to(cleared):
                    raise DirectoryOverlapError(cleared, source)

    def _write_deltas(self, changes: ChangeSet) -> int:
        """Compute deltas for every updated file with progress display."""
        if not changes.updated:
            return 0

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
            disable=not self.verbose,
        ) as progress:
            task = progress.add_task("Computing deltas...", total=len(changes.updated))
            outputs = compute_deltas(
                changes,
                self.old_root,
                self.new_root,
                self.out_root,
                self.provider,
                workers=self.config.delta_workers,
                on_delta=lambda _path: progress.update(task, advance=1),
            )

        return len(outputs)


def run_patch(
    config: PatcherConfig,
    work_dir: Path | None = None,
    provider: DeltaProvider | None = None,
    verbose: bool = False,
    console: Console | None = None,
) -> tuple[ChangeSet, RunStats]:
    """
    Run a patch with progress display.

    This is the main entry point called by the CLI.

    Args:
        config: Finished configuration for this run
        work_dir: Directory relative paths resolve against (default: cwd)
        provider: Delta provider; defaults to the configured xdelta3 command
        verbose: If True, show detailed progress in terminal
        console: Rich console for output
    """
    patcher = Patcher(
        config, work_dir=work_dir, provider=provider, verbose=verbose, console=console
    )
    return patcher.run()
