"""CLI for Treepatch."""

import sys
from pathlib import Path

import click
from click.core import ParameterSource
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import PatcherConfig, apply_overrides, get_config_path, load_config
from .errors import PatcherError
from .log import setup_logging
from .pipeline import run_patch

console = Console()
error_console = Console(stderr=True)


def get_work_dir() -> Path:
    """Get the working directory (current working directory)."""
    return Path.cwd()


def resolve_config(work_dir: Path, config_file: Path | None) -> PatcherConfig:
    """Load the default config file, or a custom one if it exists.

    A relative custom path is taken relative to work_dir.
    """
    if config_file is not None:
        if not config_file.is_absolute():
            config_file = work_dir / config_file
        if config_file.exists():
            return load_config(config_file)
        error_console.print(
            f"[yellow]Warning:[/yellow] Could not find given config file {config_file}"
        )
    return load_config(get_config_path(work_dir))


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-v", "--version", prog_name="treepatch")
@click.option(
    "-c", "--config", "config_file",
    type=click.Path(path_type=Path),
    help="Load custom config file",
)
@click.option("-t", "--out", "out_dir", help="Specify output directory")
@click.option("-o", "--old", "old_dir", help="Specify old directory")
@click.option("-n", "--new", "new_dir", help="Specify new directory")
@click.option("-z", "--zip", "archive_name", help="Specify name of new files archive")
@click.option("-g", "--gzip", "compression_level", help="Set gzip compression level (0-9)")
@click.option(
    "-x", "--list/--no-list", "create_manifest",
    default=False,
    help="Create also a list file (--no-list to not create)",
)
@click.option(
    "-l", "--only-list", "manifest_only",
    is_flag=True,
    help="Create only a list file",
)
@click.option(
    "-p", "--pack", "version",
    help="Pack all output files and specify its version code",
)
@click.option(
    "-j", "--jobs", "delta_workers",
    type=click.IntRange(min=1),
    help="Number of deltas computed in parallel",
)
@click.option(
    "-C", "--workdir", "work_dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Run as if started in this directory",
)
@click.option("--verbose", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug logging")
def main(
    config_file: Path | None,
    out_dir: str | None,
    old_dir: str | None,
    new_dir: str | None,
    archive_name: str | None,
    compression_level: str | None,
    create_manifest: bool | None,
    manifest_only: bool | None,
    version: str | None,
    delta_workers: int | None,
    work_dir: Path | None,
    verbose: bool,
    debug: bool,
) -> None:
    """Treepatch - binary patch sets between two directory trees.

    Every file that changed between the old and new directory gets a
    VCDIFF delta (made with xdelta3) in the output directory. Files that
    only exist in the new directory are packed, together with the new
    directory structure, into a .tar.gz archive.

    Defaults are read from config.yaml, which is created on first run.
    """
    setup_logging(verbose=verbose, debug=debug)

    work_dir = work_dir or get_work_dir()
    work_dir.mkdir(parents=True, exist_ok=True)

    config = resolve_config(work_dir, config_file)
    ctx = click.get_current_context()
    if ctx.get_parameter_source("create_manifest") == ParameterSource.DEFAULT:
        create_manifest = None
    if not manifest_only:
        manifest_only = None
    config = apply_overrides(
        config,
        old=old_dir,
        new=new_dir,
        out=out_dir,
        archive_name=archive_name,
        compression_level=compression_level,
        create_manifest=create_manifest,
        manifest_only=manifest_only,
        version=version,
        delta_workers=delta_workers,
    )

    try:
        changes, stats = run_patch(config, work_dir=work_dir, verbose=verbose, console=console)
    except PatcherError as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Patch Complete")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")

    table.add_row("Updated files", str(stats.files_updated))
    table.add_row("New files", str(stats.files_new))
    table.add_row("Removed files", str(stats.files_removed))
    table.add_row("Removed directories", str(stats.directories_removed))
    table.add_row("Deltas written", str(stats.deltas_written))
    table.add_row("Archive entries", str(stats.archive_entries))
    table.add_row("Archive bytes", str(stats.archive_bytes))
    table.add_row("Skipped entries", str(stats.entries_skipped))
    if stats.archive_path:
        table.add_row("Archive", str(stats.archive_path))
    if stats.manifest_path:
        table.add_row("List file", str(stats.manifest_path))
    if stats.package_dir:
        table.add_row("Package", str(stats.package_dir))

    console.print(table)

    if not changes.has_changes:
        console.print("[green]Trees are identical.[/green]")


if __name__ == "__main__":
    main()
