"""Tests for configuration data models."""

from pathlib import Path

import pytest

from mediaopt.config.models import (
    DEFAULT_LARGE_FILE_THRESHOLD,
    JobsConfig,
    LoggingConfig,
    MediaoptConfig,
    ToolPathsConfig,
)


class TestJobsConfig:
    """Tests for JobsConfig defaults and validation."""

    def test_defaults(self) -> None:
        config = JobsConfig()
        assert config.stall_timeout == 300.0
        assert config.grace_period == 5.0
        assert config.max_runtime is None
        assert config.threads is None
        assert config.large_file_threshold == DEFAULT_LARGE_FILE_THRESHOLD
        assert config.halve_threads_for_small_files is True

    def test_threshold_is_ten_gibibytes(self) -> None:
        assert DEFAULT_LARGE_FILE_THRESHOLD == 10 * 1024 * 1024 * 1024

    @pytest.mark.parametrize(
        "field", ["stall_timeout", "grace_period", "poll_interval", "probe_timeout"]
    )
    def test_rejects_non_positive_timings(self, field: str) -> None:
        with pytest.raises(ValueError, match=field):
            JobsConfig(**{field: 0})

    def test_rejects_negative_drain_period(self) -> None:
        with pytest.raises(ValueError, match="drain_period"):
            JobsConfig(drain_period=-1)

    def test_zero_drain_period_allowed(self) -> None:
        assert JobsConfig(drain_period=0).drain_period == 0

    def test_rejects_zero_threads(self) -> None:
        with pytest.raises(ValueError, match="threads"):
            JobsConfig(threads=0)

    def test_rejects_non_positive_max_runtime(self) -> None:
        with pytest.raises(ValueError, match="max_runtime"):
            JobsConfig(max_runtime=0)


class TestLoggingConfig:
    """Tests for LoggingConfig validation."""

    def test_defaults(self) -> None:
        config = LoggingConfig()
        assert config.level == "info"
        assert config.format == "text"
        assert config.file is None
        assert config.engine_level == "warning"

    def test_level_is_case_insensitive(self) -> None:
        assert LoggingConfig(level="DEBUG").level == "DEBUG"

    def test_rejects_unknown_level(self) -> None:
        with pytest.raises(ValueError, match="level"):
            LoggingConfig(level="verbose")

    def test_rejects_unknown_engine_level(self) -> None:
        with pytest.raises(ValueError, match="engine_level"):
            LoggingConfig(engine_level="trace")

    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(ValueError, match="format"):
            LoggingConfig(format="xml")


class TestMediaoptConfig:
    """Tests for MediaoptConfig."""

    def test_get_tool_path(self) -> None:
        config = MediaoptConfig(
            tools=ToolPathsConfig(ffmpeg=Path("/opt/ffmpeg/bin/ffmpeg"))
        )
        assert config.get_tool_path("ffmpeg") == Path("/opt/ffmpeg/bin/ffmpeg")
        assert config.get_tool_path("ffprobe") is None
