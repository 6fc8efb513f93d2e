"""Formatters for probe results.

Used by the ``inspect`` command to show duration, audio streams and the
stream the selector would pick.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from mediaopt.core.formatting import format_duration
from mediaopt.introspector.types import StreamInfo

if TYPE_CHECKING:
    from mediaopt.policy.audio_selection import AudioSelection


def format_stream_line(stream: StreamInfo) -> str:
    """Format a single stream for human output, e.g. ``#1 [audio] ac3 6ch eng``."""
    parts = [f"#{stream.index}", f"[{stream.codec_type}]"]
    if stream.codec_name:
        parts.append(stream.codec_name)
    if stream.channels:
        parts.append(f"{stream.channels}ch")
    if stream.language and stream.language != "und":
        parts.append(stream.language)
    if stream.title:
        parts.append(f'"{stream.title}"')
    return " ".join(parts)


def format_human(
    path: Path,
    duration: float,
    streams: list[StreamInfo],
    selection: AudioSelection | None,
) -> str:
    """Format probe results for terminal output."""
    lines = [f"File: {path}", f"Duration: {format_duration(duration)}", ""]

    audio = [s for s in streams if s.is_audio]
    lines.append("Audio streams:")
    if audio:
        for stream in audio:
            marker = "*" if selection and stream.index == selection.index else " "
            lines.append(f"  {marker} {format_stream_line(stream)}")
    else:
        lines.append("  (no audio streams found)")

    lines.append("")
    if selection is not None:
        lines.append(
            f"Selected: stream #{selection.index} (matched by {selection.tier.value})"
        )
    else:
        lines.append("Selected: none")
    return "\n".join(lines)


def stream_to_dict(stream: StreamInfo) -> dict[str, Any]:
    """Convert StreamInfo to a JSON-serializable dict."""
    return {
        "index": stream.index,
        "type": stream.codec_type,
        "codec": stream.codec_name,
        "channels": stream.channels,
        "language": stream.language,
        "title": stream.title,
    }


def format_json(
    path: Path,
    duration: float,
    streams: list[StreamInfo],
    selection: AudioSelection | None,
) -> str:
    """Format probe results as JSON."""
    data = {
        "file": str(path),
        "duration_seconds": duration,
        "streams": [stream_to_dict(s) for s in streams],
        "selected_audio": (
            {"index": selection.index, "tier": selection.tier.value}
            if selection is not None
            else None
        ),
    }
    return json.dumps(data, indent=2)
