"""Delta providers for Treepatch.

A provider turns an (old, new) file pair into a VCDIFF (RFC 3284) delta
written to disk. The default provider shells out to xdelta3.
"""

from __future__ import annotations

import logging
import shlex
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from pathlib import Path

from . import DELTA_SUFFIX
from .config import PatcherConfig
from .errors import PatcherError
from .reconciler import ChangeSet

logger = logging.getLogger(__name__)

# Called after each delta is written: (relative_path)
DeltaCallback = Callable[[str], None]


class DeltaComputationFailure(PatcherError):
    """The delta provider could not produce a delta for a file pair."""

    def __init__(
        self,
        old_file: Path,
        new_file: Path,
        output: Path,
        reason: str,
        command: list[str] | None = None,
    ):
        self.old_file = old_file
        self.new_file = new_file
        self.output = output
        self.reason = reason
        self.command = command
        if command:
            detail = f'Could not create delta with command "{shlex.join(command)}"'
        else:
            detail = (
                f"Could not create delta from {old_file} to {new_file} "
                f"(output {output})"
            )
        super().__init__(f"{detail}: {reason}")


class DeltaProvider(ABC):
    """Abstract base class for delta providers."""

    @abstractmethod
    def compute_delta(self, old_file: Path, new_file: Path, output: Path) -> None:
        """
        Write the delta that turns old_file into new_file to output.

        If old_file does not exist the delta must encode the whole new file.

        Raises:
            DeltaComputationFailure: if the delta could not be produced
        """
        ...


class Xdelta3Provider(DeltaProvider):
    """Runs the xdelta3 executable, which emits VCDIFF natively."""

    def __init__(self, command: str = "xdelta3"):
        self.command = command

    def build_command(self, old_file: Path, new_file: Path, output: Path) -> list[str]:
        """Build the argument list for one invocation."""
        command = [self.command, "-f", "-e"]
        if old_file.is_file():
            command += ["-s", str(old_file)]
        command += [str(new_file), str(output)]
        return command

    def compute_delta(self, old_file: Path, new_file: Path, output: Path) -> None:
        command = self.build_command(old_file, new_file, output)
        logger.debug("Running %s", shlex.join(command))

        if shutil.which(self.command) is None:
            raise DeltaComputationFailure(
                old_file, new_file, output,
                f"executable {self.command!r} not found",
                command,
            )

        try:
            result = subprocess.run(command, capture_output=True, text=True)
        except OSError as e:
            raise DeltaComputationFailure(old_file, new_file, output, str(e), command) from e

        if result.returncode != 0:
            reason = result.stderr.strip() or f"exit status {result.returncode}"
            raise DeltaComputationFailure(old_file, new_file, output, reason, command)


def get_delta_provider(config: PatcherConfig) -> DeltaProvider:
    """Get the delta provider configured for this run."""
    return Xdelta3Provider(config.delta_command)


def delta_output_path(out_root: Path, relative_path: str) -> Path:
    """Location of the delta for one updated file."""
    return out_root / (relative_path + DELTA_SUFFIX)


def compute_deltas(
    changes: ChangeSet,
    old_root: Path,
    new_root: Path,
    out_root: Path,
    provider: DeltaProvider,
    workers: int = 1,
    on_delta: DeltaCallback | None = None,
) -> list[Path]:
    """
    Compute one delta per updated file.

    Each invocation writes to its own output path, so they may run on a
    bounded thread pool. The first failure cancels the jobs not yet started
    and is re-raised.

    Args:
        changes: Classified changes; only ``updated`` is read
        old_root: Root of the old tree
        new_root: Root of the new tree
        out_root: Directory receiving ``<relative_path>.upd`` files
        provider: Delta provider to invoke
        workers: Maximum concurrent invocations
        on_delta: Optional callback after each delta is written

    Returns:
        Delta paths in the order of ``changes.updated``
    """
    outputs = [delta_output_path(out_root, path) for path in changes.updated]

    def run_one(relative_path: str, output: Path) -> None:
        output.parent.mkdir(parents=True, exist_ok=True)
        provider.compute_delta(old_root / relative_path, new_root / relative_path, output)
        logger.info("Delta written: %s", output)
        if on_delta:
            on_delta(relative_path)

    if workers <= 1 or len(outputs) <= 1:
        for relative_path, output in zip(changes.updated, outputs):
            run_one(relative_path, output)
        return outputs

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(run_one, relative_path, output)
            for relative_path, output in zip(changes.updated, outputs)
        ]
        done, pending = wait(futures, return_when=FIRST_EXCEPTION)
        for future in pending:
            future.cancel()
        # Surface the first failure in ChangeSet order
        for future in futures:
            if future in done and future.exception() is not None:
                raise future.exception()

    return outputs
