"""External tool helpers: path resolution and ffmpeg progress parsing."""

from mediaopt.tools.ffmpeg_progress import (
    is_progress_end,
    parse_elapsed_seconds,
    parse_progress_percent,
)
from mediaopt.tools.resolver import ToolNotFoundError, get_tool_path, require_tool

__all__ = [
    "ToolNotFoundError",
    "get_tool_path",
    "is_progress_end",
    "parse_elapsed_seconds",
    "parse_progress_percent",
    "require_tool",
]
