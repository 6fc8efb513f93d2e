"""All-or-nothing publication of engine output.

The engine writes into a per-job temporary path; commit() publishes it to
the destination with a rename so the destination is never observed half
written. discard() removes a job's temporary artifacts on every other
outcome.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
from pathlib import Path

from mediaopt.jobs.exceptions import CommitError

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_SUFFIX = ".mkv"


def temp_paths(temp_dir: Path, job_id: str, output_path: Path) -> tuple[Path, Path]:
    """Per-job temporary output and progress file paths.

    Args:
        temp_dir: Directory for temporary files.
        job_id: Unique job identifier; namespaces the files.
        output_path: Final destination; its suffix selects the container.

    Returns:
        Tuple of (``temp_<id><ext>``, ``progress_<id>.txt``).
    """
    suffix = output_path.suffix or DEFAULT_OUTPUT_SUFFIX
    return (
        temp_dir / f"temp_{job_id}{suffix}",
        temp_dir / f"progress_{job_id}.txt",
    )


def validate_output(output_path: Path) -> tuple[bool, str | None]:
    """Check that the engine produced a non-empty output file.

    Returns:
        Tuple of (is_valid, error_message). error_message is None if valid.
    """
    try:
        size = output_path.stat().st_size
    except FileNotFoundError:
        return False, f"Output file does not exist: {output_path}"
    except OSError as e:
        return False, f"Could not stat output file: {e}"

    if not output_path.is_file():
        return False, f"Output is not a regular file: {output_path}"
    if size == 0:
        return False, f"Output file is empty: {output_path}"
    return True, None


def _replace_across_devices(temp_output: Path, destination: Path) -> None:
    """Copy into the destination directory, then rename into place."""
    staging = destination.with_name(f".{destination.name}.partial")
    try:
        shutil.copy2(temp_output, staging)
        os.replace(staging, destination)
    except OSError:
        discard(staging)
        raise
    discard(temp_output)


def commit(temp_output: Path, destination: Path) -> Path:
    """Atomically publish ``temp_output`` at ``destination``.

    Overwrites an existing destination. When the temporary directory is on a
    different filesystem, the file is first copied next to the destination
    and then renamed, so the publish step is still a single rename.

    Returns:
        The destination path.

    Raises:
        CommitError: If the output is missing or empty, or cannot be moved.
    """
    is_valid, error_msg = validate_output(temp_output)
    if not is_valid:
        raise CommitError(error_msg)

    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(temp_output, destination)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            logger.debug("Temp dir on another filesystem, copying before rename")
            _replace_across_devices(temp_output, destination)
    except OSError as e:
        raise CommitError(f"Could not publish output to {destination}: {e}") from e

    logger.info("Moved temp file to final: %s", destination)
    return destination


def discard(*paths: Path) -> None:
    """Remove temporary artifacts, ignoring missing files.

    Failures are logged, never raised: cleanup runs on paths that are
    already failing and must not mask the original error.
    """
    for path in paths:
        try:
            path.unlink()
            logger.debug("Cleaned up temp file: %s", path)
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("Could not clean up temp file %s: %s", path, e)


class OutputCommitter:
    """Object form of the commit helpers, for injection into the controller."""

    def temp_paths(
        self, temp_dir: Path, job_id: str, output_path: Path
    ) -> tuple[Path, Path]:
        return temp_paths(temp_dir, job_id, output_path)

    def commit(self, temp_output: Path, destination: Path) -> Path:
        return commit(temp_output, destination)

    def discard(self, *paths: Path) -> None:
        discard(*paths)
