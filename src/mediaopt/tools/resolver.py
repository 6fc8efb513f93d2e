"""External tool path resolution.

Tools are resolved from the configured path first (config file or
MEDIAOPT_*_PATH environment variables) and then from the system PATH.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)

INSTALL_HINTS: dict[str, str] = {
    "ffmpeg": "Install ffmpeg (e.g. 'apt install ffmpeg' or 'brew install ffmpeg').",
    "ffprobe": "ffprobe ships with ffmpeg; install ffmpeg to get it.",
}


class ToolNotFoundError(RuntimeError):
    """Raised when a required external tool cannot be located."""

    def __init__(self, tool_name: str, configured: Path | None = None) -> None:
        self.tool_name = tool_name
        self.configured = configured
        detail = (
            f"configured path {configured} is not executable"
            if configured is not None
            else "not found in PATH"
        )
        hint = INSTALL_HINTS.get(tool_name, "")
        super().__init__(
            f"Required tool not available: {tool_name} ({detail}). {hint}".strip()
        )


def get_tool_path(tool_name: str, configured: Path | None = None) -> Path | None:
    """Get path to a tool, or None if not available.

    Args:
        tool_name: Executable name (ffmpeg, ffprobe).
        configured: Explicitly configured path, checked before PATH.

    Returns:
        Path to the executable, or None.
    """
    if configured is not None:
        path = Path(configured).expanduser()
        if path.is_file() and os.access(path, os.X_OK):
            return path
        logger.warning(
            "Configured %s path is not an executable file: %s", tool_name, path
        )
        return None

    found = shutil.which(tool_name)
    return Path(found) if found else None


def require_tool(tool_name: str, configured: Path | None = None) -> Path:
    """Get path to a required tool, raising an error if not available.

    Raises:
        ToolNotFoundError: If the tool cannot be located.
    """
    path = get_tool_path(tool_name, configured)
    if path is None:
        raise ToolNotFoundError(tool_name, configured)
    return path
