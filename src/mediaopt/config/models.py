"""Configuration data models.

This module defines dataclasses for mediaopt configuration options.
"""

from dataclasses import dataclass, field
from pathlib import Path

# 10 GiB: inputs below this size run with half the available threads
DEFAULT_LARGE_FILE_THRESHOLD = 10 * 1024**3


@dataclass
class ToolPathsConfig:
    """Configuration for external tool paths.

    All paths are optional. If not specified, tools are looked up in PATH.
    """

    ffmpeg: Path | None = None
    ffprobe: Path | None = None


@dataclass
class JobsConfig:
    """Configuration for job supervision.

    The timing values are tunables, not fixed limits.
    """

    # Directory for temp output and progress files (None = system temp dir)
    temp_directory: Path | None = None

    # Seconds without forward progress before a running job is cancelled
    stall_timeout: float = 300.0

    # Seconds between SIGTERM and SIGKILL when terminating the engine
    grace_period: float = 5.0

    # Seconds to keep reading the progress feed after the engine exits
    drain_period: float = 2.0

    # Sleep between polls of the progress feed when no data is available
    poll_interval: float = 0.1

    # Hard limit on engine runtime in seconds (None = unlimited)
    max_runtime: float | None = None

    # Encoder threads (None = derive from CPU count)
    threads: int | None = None

    # Inputs smaller than this run with half the CPU threads
    large_file_threshold: int = DEFAULT_LARGE_FILE_THRESHOLD

    # Whether to halve the thread count for inputs below the threshold
    halve_threads_for_small_files: bool = True

    # Timeout for each ffprobe invocation in seconds
    probe_timeout: float = 60.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        for name in ("stall_timeout", "grace_period", "poll_interval", "probe_timeout"):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.drain_period < 0:
            raise ValueError(
                f"drain_period must be non-negative, got {self.drain_period}"
            )
        if self.max_runtime is not None and self.max_runtime <= 0:
            raise ValueError(f"max_runtime must be positive, got {self.max_runtime}")
        if self.threads is not None and self.threads < 1:
            raise ValueError(f"threads must be at least 1, got {self.threads}")
        if self.large_file_threshold < 0:
            raise ValueError(
                "large_file_threshold must be non-negative, "
                f"got {self.large_file_threshold}"
            )


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    # Log level: debug, info, warning, error
    level: str = "info"

    # Log file path (None = stderr only)
    file: Path | None = None

    # Log format: text or json
    format: str = "text"

    # Also log to stderr when file is set
    include_stderr: bool = False

    # Rotation threshold in bytes (default 10MB)
    max_bytes: int = 10_485_760

    # Number of rotated files to keep
    backup_count: int = 5

    # Threshold for ffmpeg diagnostic output on the "mediaopt.engine" logger,
    # independent of level; debug shows every line ffmpeg prints
    engine_level: str = "warning"

    def __post_init__(self) -> None:
        """Validate configuration."""
        valid_levels = {"debug", "info", "warning", "error"}
        if self.level.lower() not in valid_levels:
            raise ValueError(f"level must be one of {valid_levels}, got {self.level}")
        if self.engine_level.lower() not in valid_levels:
            raise ValueError(
                f"engine_level must be one of {valid_levels}, got {self.engine_level}"
            )
        valid_formats = {"text", "json"}
        if self.format.lower() not in valid_formats:
            raise ValueError(
                f"format must be one of {valid_formats}, got {self.format}"
            )


@dataclass
class MediaoptConfig:
    """Main configuration container for mediaopt.

    Aggregates all configuration sections.
    """

    tools: ToolPathsConfig = field(default_factory=ToolPathsConfig)
    jobs: JobsConfig = field(default_factory=JobsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Default encoding policy file (None = built-in policy)
    policy_path: Path | None = None

    def get_tool_path(self, tool_name: str) -> Path | None:
        """Get configured path for a tool.

        Args:
            tool_name: Name of the tool (ffmpeg, ffprobe).

        Returns:
            Configured path or None if not configured.
        """
        return getattr(self.tools, tool_name.lower(), None)
