"""Configuration builder with explicit layering.

This module provides ConfigBuilder for building MediaoptConfig by composing
multiple configuration sources with explicit precedence handling.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

from mediaopt.config.env import EnvReader, parse_duration, parse_size
from mediaopt.config.models import (
    DEFAULT_LARGE_FILE_THRESHOLD,
    JobsConfig,
    LoggingConfig,
    MediaoptConfig,
    ToolPathsConfig,
)


@dataclass
class ConfigSource:
    """Configuration values from a single source.

    None values indicate "not specified in this source" and will not
    override values from lower-precedence sources.
    """

    # Tool paths
    ffmpeg_path: Path | None = None
    ffprobe_path: Path | None = None

    # Policy
    policy_path: Path | None = None

    # Jobs config
    jobs_temp_directory: Path | None = None
    jobs_stall_timeout: float | None = None
    jobs_grace_period: float | None = None
    jobs_drain_period: float | None = None
    jobs_poll_interval: float | None = None
    jobs_max_runtime: float | None = None
    jobs_threads: int | None = None
    jobs_large_file_threshold: int | None = None
    jobs_halve_threads_for_small_files: bool | None = None
    jobs_probe_timeout: float | None = None

    # Logging config
    logging_level: str | None = None
    logging_file: Path | None = None
    logging_format: str | None = None
    logging_include_stderr: bool | None = None
    logging_max_bytes: int | None = None
    logging_backup_count: int | None = None
    logging_engine_level: str | None = None


class ConfigBuilder:
    """Builds MediaoptConfig by layering ConfigSources with precedence.

    Later sources override earlier ones (for non-None values).

    Example:
        builder = ConfigBuilder()
        builder.apply(source_from_file(file_config))
        builder.apply(source_from_env(reader))
        builder.apply(cli_source)
        config = builder.build()
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def apply(self, source: ConfigSource) -> None:
        """Apply configuration source, overriding existing values.

        Non-None values from the source override existing values.
        None values are ignored (preserve existing).
        """
        for field_obj in fields(source):
            value = getattr(source, field_obj.name)
            if value is not None:
                self._values[field_obj.name] = value

    def _get(self, key: str, default: Any) -> Any:
        return self._values.get(key, default)

    def build(self) -> MediaoptConfig:
        """Build the final MediaoptConfig with defaults for unset values.

        Returns:
            Complete MediaoptConfig with all values resolved.

        Raises:
            ValueError: If a resolved value fails model validation.
        """
        tools = ToolPathsConfig(
            ffmpeg=self._get("ffmpeg_path", None),
            ffprobe=self._get("ffprobe_path", None),
        )

        # 0 means "no limit" for max_runtime and "auto" for threads
        max_runtime = self._get("jobs_max_runtime", None)
        threads = self._get("jobs_threads", None)

        jobs = JobsConfig(
            temp_directory=self._get("jobs_temp_directory", None),
            stall_timeout=self._get("jobs_stall_timeout", 300.0),
            grace_period=self._get("jobs_grace_period", 5.0),
            drain_period=self._get("jobs_drain_period", 2.0),
            poll_interval=self._get("jobs_poll_interval", 0.1),
            max_runtime=max_runtime if max_runtime else None,
            threads=threads if threads else None,
            large_file_threshold=self._get(
                "jobs_large_file_threshold", DEFAULT_LARGE_FILE_THRESHOLD
            ),
            halve_threads_for_small_files=self._get(
                "jobs_halve_threads_for_small_files", True
            ),
            probe_timeout=self._get("jobs_probe_timeout", 60.0),
        )

        logging_config = LoggingConfig(
            level=self._get("logging_level", "info"),
            file=self._get("logging_file", None),
            format=self._get("logging_format", "text"),
            include_stderr=self._get("logging_include_stderr", False),
            max_bytes=self._get("logging_max_bytes", 10_485_760),
            backup_count=self._get("logging_backup_count", 5),
            engine_level=self._get("logging_engine_level", "warning"),
        )

        return MediaoptConfig(
            tools=tools,
            jobs=jobs,
            logging=logging_config,
            policy_path=self._get("policy_path", None),
        )


def _optional_path(value: str | None) -> Path | None:
    return Path(value).expanduser() if value else None


def _seconds(value: Any) -> Any:
    # Strings carry a unit ("5m"); numbers are already seconds
    return parse_duration(value) if isinstance(value, str) else value


def _bytes(value: Any) -> Any:
    return parse_size(value) if isinstance(value, str) else value


def source_from_file(file_config: dict[str, Any]) -> ConfigSource:
    """Create ConfigSource from parsed TOML config file.

    Args:
        file_config: Parsed configuration dictionary from TOML file.

    Returns:
        ConfigSource with values from the config file.
    """
    tools = file_config.get("tools", {})
    policy = file_config.get("policy", {})
    jobs = file_config.get("jobs", {})
    logging_conf = file_config.get("logging", {})

    return ConfigSource(
        # Tool paths
        ffmpeg_path=_optional_path(tools.get("ffmpeg")),
        ffprobe_path=_optional_path(tools.get("ffprobe")),
        # Policy
        policy_path=_optional_path(policy.get("path")),
        # Jobs
        jobs_temp_directory=_optional_path(jobs.get("temp_directory")),
        jobs_stall_timeout=_seconds(jobs.get("stall_timeout")),
        jobs_grace_period=_seconds(jobs.get("grace_period")),
        jobs_drain_period=_seconds(jobs.get("drain_period")),
        jobs_poll_interval=_seconds(jobs.get("poll_interval")),
        jobs_max_runtime=_seconds(jobs.get("max_runtime")),
        jobs_threads=jobs.get("threads"),
        jobs_large_file_threshold=_bytes(jobs.get("large_file_threshold")),
        jobs_halve_threads_for_small_files=jobs.get("halve_threads_for_small_files"),
        jobs_probe_timeout=_seconds(jobs.get("probe_timeout")),
        # Logging
        logging_level=logging_conf.get("level"),
        logging_file=_optional_path(logging_conf.get("file")),
        logging_format=logging_conf.get("format"),
        logging_include_stderr=logging_conf.get("include_stderr"),
        logging_max_bytes=_bytes(logging_conf.get("max_bytes")),
        logging_backup_count=logging_conf.get("backup_count"),
        logging_engine_level=logging_conf.get("engine_level"),
    )


def source_from_env(reader: EnvReader) -> ConfigSource:
    """Create ConfigSource from environment variables.

    Args:
        reader: EnvReader instance for reading environment variables.

    Returns:
        ConfigSource with values from environment variables.
    """
    return ConfigSource(
        # Tool paths
        ffmpeg_path=reader.get_path("MEDIAOPT_FFMPEG_PATH"),
        ffprobe_path=reader.get_path("MEDIAOPT_FFPROBE_PATH"),
        # Policy
        policy_path=reader.get_path("MEDIAOPT_POLICY_PATH"),
        # Jobs (temp dir may not exist yet; it is created on first use)
        jobs_temp_directory=reader.get_path("MEDIAOPT_TEMP_DIR", must_exist=False),
        jobs_stall_timeout=reader.get_seconds("MEDIAOPT_STALL_TIMEOUT"),
        jobs_grace_period=reader.get_seconds("MEDIAOPT_GRACE_PERIOD"),
        jobs_drain_period=reader.get_seconds("MEDIAOPT_DRAIN_PERIOD"),
        jobs_max_runtime=reader.get_seconds("MEDIAOPT_MAX_RUNTIME"),
        jobs_threads=reader.get_count("MEDIAOPT_THREADS"),
        jobs_large_file_threshold=reader.get_size("MEDIAOPT_LARGE_FILE_THRESHOLD"),
        jobs_halve_threads_for_small_files=reader.get_flag("MEDIAOPT_HALVE_THREADS"),
        jobs_probe_timeout=reader.get_seconds("MEDIAOPT_PROBE_TIMEOUT"),
        # Logging
        logging_level=reader.get_str("MEDIAOPT_LOG_LEVEL"),
        logging_file=reader.get_path("MEDIAOPT_LOG_FILE", must_exist=False),
        logging_format=reader.get_str("MEDIAOPT_LOG_FORMAT"),
        logging_engine_level=reader.get_str("MEDIAOPT_LOG_ENGINE_LEVEL"),
    )
