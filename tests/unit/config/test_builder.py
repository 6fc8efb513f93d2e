"""Tests for ConfigBuilder module."""

from __future__ import annotations

from pathlib import Path

import pytest

from mediaopt.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from mediaopt.config.env import EnvReader


class TestConfigSource:
    """Tests for ConfigSource dataclass."""

    def test_all_fields_default_to_none(self) -> None:
        source = ConfigSource()
        assert source.ffmpeg_path is None
        assert source.jobs_stall_timeout is None
        assert source.logging_level is None


class TestConfigBuilder:
    """Tests for ConfigBuilder class."""

    def test_build_with_no_sources_uses_defaults(self) -> None:
        config = ConfigBuilder().build()
        assert config.tools.ffmpeg is None
        assert config.jobs.stall_timeout == 300.0
        assert config.jobs.temp_directory is None
        assert config.logging.level == "info"
        assert config.policy_path is None

    def test_later_source_overrides_earlier(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(jobs_stall_timeout=60.0, jobs_grace_period=2.0))
        builder.apply(ConfigSource(jobs_stall_timeout=30.0))
        config = builder.build()
        assert config.jobs.stall_timeout == 30.0
        assert config.jobs.grace_period == 2.0

    def test_none_does_not_override(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(ffmpeg_path=Path("/usr/bin/ffmpeg")))
        builder.apply(ConfigSource(ffmpeg_path=None))
        assert builder.build().tools.ffmpeg == Path("/usr/bin/ffmpeg")

    def test_zero_max_runtime_means_unlimited(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(jobs_max_runtime=0))
        assert builder.build().jobs.max_runtime is None

    def test_zero_threads_means_auto(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(jobs_threads=0))
        assert builder.build().jobs.threads is None

    def test_invalid_value_raises(self) -> None:
        builder = ConfigBuilder()
        builder.apply(ConfigSource(jobs_stall_timeout=-5.0))
        with pytest.raises(ValueError, match="stall_timeout"):
            builder.build()


class TestSourceFromFile:
    """Tests for source_from_file."""

    def test_reads_all_sections(self) -> None:
        source = source_from_file(
            {
                "tools": {"ffmpeg": "/opt/ffmpeg", "ffprobe": "/opt/ffprobe"},
                "policy": {"path": "/etc/mediaopt/policy.yaml"},
                "jobs": {
                    "temp_directory": "/scratch",
                    "stall_timeout": 120,
                    "max_runtime": 7200,
                    "halve_threads_for_small_files": False,
                },
                "logging": {"level": "debug", "format": "json"},
            }
        )
        assert source.ffmpeg_path == Path("/opt/ffmpeg")
        assert source.ffprobe_path == Path("/opt/ffprobe")
        assert source.policy_path == Path("/etc/mediaopt/policy.yaml")
        assert source.jobs_temp_directory == Path("/scratch")
        assert source.jobs_stall_timeout == 120
        assert source.jobs_max_runtime == 7200
        assert source.jobs_halve_threads_for_small_files is False
        assert source.logging_level == "debug"
        assert source.logging_format == "json"

    def test_empty_config(self) -> None:
        source = source_from_file({})
        assert source == ConfigSource()

    def test_empty_path_string_is_unset(self) -> None:
        source = source_from_file({"tools": {"ffmpeg": ""}})
        assert source.ffmpeg_path is None

    def test_string_values_take_units(self) -> None:
        source = source_from_file(
            {
                "jobs": {
                    "stall_timeout": "5m",
                    "grace_period": "1500ms",
                    "max_runtime": "2h",
                    "large_file_threshold": "4GiB",
                },
                "logging": {"max_bytes": "20M", "engine_level": "debug"},
            }
        )
        assert source.jobs_stall_timeout == 300.0
        assert source.jobs_grace_period == 1.5
        assert source.jobs_max_runtime == 7200.0
        assert source.jobs_large_file_threshold == 4 * 1024**3
        assert source.logging_max_bytes == 20 * 1024**2
        assert source.logging_engine_level == "debug"

    def test_bad_unit_string_raises(self) -> None:
        with pytest.raises(ValueError, match="invalid duration"):
            source_from_file({"jobs": {"stall_timeout": "forever"}})


class TestSourceFromEnv:
    """Tests for source_from_env."""

    def test_reads_job_tunables(self, tmp_path: Path) -> None:
        reader = EnvReader(
            env={
                "MEDIAOPT_TEMP_DIR": str(tmp_path / "not-yet"),
                "MEDIAOPT_STALL_TIMEOUT": "45",
                "MEDIAOPT_MAX_RUNTIME": "10m",
                "MEDIAOPT_THREADS": "3",
                "MEDIAOPT_LARGE_FILE_THRESHOLD": "2G",
                "MEDIAOPT_HALVE_THREADS": "no",
                "MEDIAOPT_LOG_LEVEL": "warning",
                "MEDIAOPT_LOG_ENGINE_LEVEL": "info",
            }
        )
        source = source_from_env(reader)
        assert source.jobs_temp_directory == tmp_path / "not-yet"
        assert source.jobs_stall_timeout == 45.0
        assert source.jobs_max_runtime == 600.0
        assert source.jobs_threads == 3
        assert source.jobs_large_file_threshold == 2 * 1024**3
        assert source.jobs_halve_threads_for_small_files is False
        assert source.logging_level == "warning"
        assert source.logging_engine_level == "info"

    def test_tool_path_must_exist(self, tmp_path: Path) -> None:
        reader = EnvReader(env={"MEDIAOPT_FFMPEG_PATH": str(tmp_path / "missing")})
        assert source_from_env(reader).ffmpeg_path is None

    def test_unparseable_value_falls_through(self) -> None:
        reader = EnvReader(env={"MEDIAOPT_STALL_TIMEOUT": "soon"})
        builder = ConfigBuilder()
        builder.apply(ConfigSource(jobs_stall_timeout=90.0))
        builder.apply(source_from_env(reader))
        assert builder.build().jobs.stall_timeout == 90.0

    def test_empty_environment(self) -> None:
        assert source_from_env(EnvReader(env={})) == ConfigSource()
