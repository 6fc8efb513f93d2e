"""Pure parsing functions for ffprobe output.

These functions transform ffprobe output into typed stream descriptors.
All functions are pure (no I/O, no side effects) for easy testing.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from mediaopt.introspector.types import StreamInfo

logger = logging.getLogger(__name__)


def sanitize_string(value: str | None) -> str | None:
    """Sanitize a string by replacing invalid UTF-8 characters.

    Returns None for None and for strings that are empty after stripping.
    """
    if value is None:
        return None
    value = value.encode("utf-8", errors="replace").decode("utf-8").strip()
    return value or None


def validate_positive_int(
    value: Any,
    field_name: str,
    file_path: str | None = None,
) -> int | None:
    """Validate that a value is a non-negative integer or None.

    Args:
        value: Value to validate.
        field_name: Field name for warning messages.
        file_path: File path context for warnings.

    Returns:
        Validated value or None if invalid.
    """
    if value is None:
        return None
    context = f" in {file_path}" if file_path else ""
    if isinstance(value, bool) or not isinstance(value, int):
        logger.warning(
            "Expected int for %s%s, got %s", field_name, context, type(value).__name__
        )
        return None
    if value < 0:
        logger.warning("Invalid negative %s%s: %d", field_name, context, value)
        return None
    return value


def parse_duration(value: str | None) -> float | None:
    """Parse ffprobe's duration output into seconds.

    Accepts the bare value printed by
    ``-of default=noprint_wrappers=1:nokey=1``. When several lines are
    present the first non-empty one is used.

    Args:
        value: Raw ffprobe stdout (e.g., "3600.000000\\n") or None.

    Returns:
        Duration in seconds, or None if missing, unparsable, non-finite
        or not strictly positive.
    """
    if value is None:
        return None
    lines = [line.strip() for line in value.splitlines() if line.strip()]
    if not lines:
        return None
    try:
        duration = float(lines[0])
    except ValueError:
        return None
    if not math.isfinite(duration) or duration <= 0:
        return None
    return duration


def _tag(tags: dict[str, Any], name: str) -> str | None:
    # Tag keys vary in case between containers (TITLE vs title)
    for key, value in tags.items():
        if key.lower() == name and isinstance(value, str):
            return sanitize_string(value)
    return None


def parse_stream(stream: dict[str, Any], file_path: str | None = None) -> StreamInfo:
    """Parse a single ffprobe stream dict into a StreamInfo.

    Args:
        stream: Stream dictionary from ffprobe JSON.
        file_path: Optional file path for context in warning messages.

    Returns:
        StreamInfo domain object.
    """
    tags = stream.get("tags") or {}
    codec_type = stream.get("codec_type") or "unknown"

    channels = None
    if codec_type == "audio":
        channels = validate_positive_int(stream.get("channels"), "channels", file_path)

    return StreamInfo(
        index=stream.get("index", 0),
        codec_type=codec_type,
        codec_name=sanitize_string(stream.get("codec_name")),
        channels=channels,
        language=_tag(tags, "language"),
        title=_tag(tags, "title"),
    )


def parse_streams(
    data: dict[str, Any], file_path: str | None = None
) -> list[StreamInfo]:
    """Parse ffprobe ``-show_streams`` JSON output.

    Streams without an integer index are skipped with a warning.

    Args:
        data: Decoded ffprobe JSON document.
        file_path: Optional file path for context in warning messages.

    Returns:
        Stream descriptors ordered by index.
    """
    streams: list[StreamInfo] = []
    for raw in data.get("streams") or []:
        if not isinstance(raw, dict):
            continue
        if validate_positive_int(raw.get("index"), "index", file_path) is None:
            continue
        streams.append(parse_stream(raw, file_path))
    streams.sort(key=lambda s: s.index)
    return streams
