"""Tests for the top-level CLI group."""

import json
import logging
from pathlib import Path

import pytest
from click.testing import CliRunner

import mediaopt.cli as cli
from mediaopt.cli import main
from mediaopt.cli.exit_codes import ExitCode
from mediaopt.introspector.stub import StubIntrospector
from mediaopt.introspector.types import StreamInfo

STREAMS = [
    StreamInfo(0, "video"),
    StreamInfo(1, "audio", channels=2, language="jpn"),
    StreamInfo(2, "audio", channels=6, language="eng"),
]


@pytest.fixture(autouse=True)
def reset_cli_logging(monkeypatch):
    """Let each test configure logging afresh and restore the root logger."""
    monkeypatch.setattr(cli, "_logging_configured", False)
    monkeypatch.setattr(cli, "_startup_logged", False)
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestMainGroup:
    """Tests for the main click group."""

    def test_help_lists_commands(self) -> None:
        result = CliRunner().invoke(main, ["--help"])
        assert result.exit_code == 0
        assert "optimize" in result.output
        assert "inspect" in result.output

    def test_version(self) -> None:
        result = CliRunner().invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_invalid_config_value(self, tmp_path: Path) -> None:
        config = tmp_path / "config.toml"
        config.write_text("[jobs]\nstall_timeout = -1\n")
        media = tmp_path / "movie.mkv"
        media.write_bytes(b"\x00")

        result = CliRunner().invoke(
            main, ["--config", str(config), "inspect", str(media)]
        )
        assert result.exit_code == ExitCode.CONFIG_ERROR
        assert "Invalid configuration" in result.output

    def test_config_file_reaches_subcommand(self, tmp_path: Path) -> None:
        policy = tmp_path / "policy.yaml"
        policy.write_text("selection:\n  language_code: jpn\n")
        config = tmp_path / "config.toml"
        config.write_text(f'[policy]\npath = "{policy}"\n')
        media = tmp_path / "movie.mkv"
        media.write_bytes(b"\x00")
        log_file = tmp_path / "mediaopt.log"

        result = CliRunner().invoke(
            main,
            [
                "--config",
                str(config),
                "--log-file",
                str(log_file),
                "--log-level",
                "debug",
                "inspect",
                str(media),
                "-f",
                "json",
            ],
            obj={"introspector": StubIntrospector(60.0, STREAMS)},
        )

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["selected_audio"]["index"] == 1
        assert "mediaopt starting" in log_file.read_text()
