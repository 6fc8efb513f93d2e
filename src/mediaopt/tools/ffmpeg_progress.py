"""FFmpeg progress parsing utilities.

FFmpeg's ``-progress <path>`` option appends blocks of ``key=value`` lines to
the given file, each block terminated by ``progress=continue`` or, for the
last one, ``progress=end``. Only the elapsed output time is used here.
"""

from __future__ import annotations

import math
import re

# out_time_ms is reported in microseconds by ffmpeg despite its name
_MICROSECOND_KEYS = frozenset(("out_time_us", "out_time_ms"))

_OUT_TIME_PATTERN = re.compile(r"^(\d+):([0-5]?\d):(\d+(?:\.\d+)?)$")


def _parse_out_time(value: str) -> float | None:
    """Parse an HH:MM:SS.ffffff timestamp into seconds."""
    match = _OUT_TIME_PATTERN.match(value)
    if match is None:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


def parse_elapsed_seconds(line: str) -> float | None:
    """Extract the elapsed media time from a progress line.

    Recognizes ``out_time_us=``, ``out_time_ms=`` (both microseconds) and
    ``out_time=HH:MM:SS.ffffff``.

    Args:
        line: One line of the progress feed.

    Returns:
        Elapsed seconds, or None if the line carries no usable elapsed time
        (other keys, ``N/A``, negative or malformed values).
    """
    key, sep, value = line.strip().partition("=")
    if not sep:
        return None
    key = key.strip()
    value = value.strip()

    if key in _MICROSECOND_KEYS:
        try:
            micros = int(value)
        except ValueError:
            return None
        if micros < 0:
            return None
        return micros / 1_000_000

    if key == "out_time":
        return _parse_out_time(value)

    return None


def parse_progress_percent(line: str, duration_seconds: float) -> float | None:
    """Convert a progress line into a percentage of the total duration.

    Example:
        >>> parse_progress_percent("out_time_ms=5000000", 10.0)
        50.0
        >>> parse_progress_percent("invalid=data", 10.0) is None
        True

    Args:
        line: One line of the progress feed.
        duration_seconds: Total media duration from the probe.

    Returns:
        Percentage clamped to [0, 100], or None when the line is malformed
        or unrecognized (indeterminate, never zero).
    """
    if not math.isfinite(duration_seconds) or duration_seconds <= 0:
        return None
    elapsed = parse_elapsed_seconds(line)
    if elapsed is None:
        return None
    return max(0.0, min(100.0, elapsed / duration_seconds * 100))


def is_progress_end(line: str) -> bool:
    """Return True for the final ``progress=end`` marker."""
    key, _, value = line.strip().partition("=")
    return key.strip() == "progress" and value.strip() == "end"
