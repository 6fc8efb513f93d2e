"""FFprobe-based implementation of MediaIntrospector protocol."""

from __future__ import annotations

import json
import logging
import subprocess  # nosec B404 - subprocess is required for ffprobe invocation
from pathlib import Path

from mediaopt.core.subprocess_utils import run_command
from mediaopt.introspector.parsers import parse_duration, parse_streams
from mediaopt.introspector.types import StreamInfo
from mediaopt.jobs.exceptions import ProbeError
from mediaopt.tools.resolver import get_tool_path

logger = logging.getLogger(__name__)

# Large inputs need a deeper analysis window before ffprobe reports a duration
PROBE_ANALYZE_ARGS = ("-analyzeduration", "100M", "-probesize", "100M")


class FFprobeIntrospector:
    """ffprobe-based implementation of MediaIntrospector protocol.

    Each query is a single ffprobe invocation. Every failure mode (missing
    input, missing tool, timeout, non-zero exit, unparsable output) is
    reported as ProbeError.
    """

    def __init__(self, ffprobe_path: Path | None = None, timeout: float = 60.0) -> None:
        """Initialize the introspector.

        Args:
            ffprobe_path: Optional explicit path to ffprobe. If not provided,
                ffprobe is looked up in PATH.
            timeout: Timeout for each ffprobe invocation in seconds.

        Raises:
            ProbeError: If ffprobe is not available.
        """
        resolved = get_tool_path("ffprobe", ffprobe_path)
        if resolved is None:
            raise ProbeError(
                "ffprobe is not installed or not in PATH. "
                "Install ffmpeg, or configure a custom path via "
                "MEDIAOPT_FFPROBE_PATH or ~/.mediaopt/config.toml"
            )
        self._ffprobe_path = resolved
        self._timeout = timeout

    @property
    def ffprobe_path(self) -> Path:
        return self._ffprobe_path

    def get_duration(self, path: Path) -> float:
        """Return the container duration of ``path`` in seconds.

        Raises:
            ProbeError: If the duration cannot be determined or is not > 0.
        """
        stdout = self._run(
            path,
            [
                *PROBE_ANALYZE_ARGS,
                "-v",
                "error",
                "-show_entries",
                "format=duration",
                "-of",
                "default=noprint_wrappers=1:nokey=1",
            ],
        )
        duration = parse_duration(stdout)
        if duration is None:
            raise ProbeError(
                f"Could not determine a positive duration for {path}: "
                f"{stdout.strip()!r}"
            )
        logger.debug("Probed duration", extra={"path": str(path), "duration": duration})
        return duration

    def get_streams(self, path: Path) -> list[StreamInfo]:
        """Return the streams of ``path`` ordered by index.

        Raises:
            ProbeError: If ffprobe fails or its output is not valid JSON.
        """
        stdout = self._run(
            path,
            [
                *PROBE_ANALYZE_ARGS,
                "-v",
                "error",
                "-print_format",
                "json",
                "-show_streams",
            ],
        )
        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise ProbeError(f"Invalid ffprobe output for {path}: {e}") from e
        if not isinstance(data, dict) or "streams" not in data:
            raise ProbeError(
                f"Missing 'streams' in ffprobe output for {path}. "
                "File may be corrupted or not a valid media file."
            )
        return parse_streams(data, str(path))

    def _run(self, path: Path, args: list[str]) -> str:
        """Run ffprobe against ``path`` and return stdout.

        Raises:
            ProbeError: On missing input, launch failure, timeout or
                non-zero exit.
        """
        if not path.exists():
            raise ProbeError(f"File not found: {path}")

        try:
            stdout, stderr, returncode = run_command(
                [self._ffprobe_path, *args, path], timeout=self._timeout
            )
        except subprocess.TimeoutExpired as e:
            raise ProbeError(
                f"ffprobe timed out for {path} after {e.timeout}s"
            ) from e
        except OSError as e:
            raise ProbeError(f"Could not run ffprobe for {path}: {e}") from e

        if returncode != 0:
            raise ProbeError(
                f"ffprobe failed for {path} (exit {returncode}): {stderr.strip()}"
            )
        return stdout
