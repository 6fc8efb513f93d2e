"""Tests for CLI progress reporters."""

import io
import logging

import pytest

from mediaopt.jobs.progress import (
    LoggingProgressReporter,
    NullProgressReporter,
    StderrProgressReporter,
)


class TestStderrProgressReporter:
    """Tests for StderrProgressReporter."""

    def test_writes_in_place_line(self) -> None:
        stream = io.StringIO()
        reporter = StderrProgressReporter(label="movie.mkv", stream=stream)
        reporter(12.345)
        reporter(50.0)
        reporter.on_complete(True)
        assert stream.getvalue() == "\rmovie.mkv:  12.3%\rmovie.mkv:  50.0%\n"

    def test_disabled(self) -> None:
        stream = io.StringIO()
        reporter = StderrProgressReporter(enabled=False, stream=stream)
        reporter(10.0)
        reporter.on_complete()
        assert stream.getvalue() == ""

    def test_no_newline_without_output(self) -> None:
        stream = io.StringIO()
        StderrProgressReporter(stream=stream).on_complete(False)
        assert stream.getvalue() == ""


class TestLoggingProgressReporter:
    """Tests for LoggingProgressReporter."""

    def test_logs_in_steps(self, caplog: pytest.LogCaptureFixture) -> None:
        reporter = LoggingProgressReporter(step=25)
        with caplog.at_level(logging.INFO, logger="mediaopt.jobs.progress"):
            for percent in (1.0, 10.0, 26.0, 30.0, 80.0, 100.0):
                reporter(percent)
        messages = [r.getMessage() for r in caplog.records]
        assert messages == [
            "Progress: 1.0%",
            "Progress: 26.0%",
            "Progress: 80.0%",
            "Progress: 100.0%",
        ]


class TestNullProgressReporter:
    """Tests for NullProgressReporter."""

    def test_records(self) -> None:
        reporter = NullProgressReporter()
        reporter(5.0)
        reporter(7.5)
        reporter.on_complete(False)
        assert reporter.samples == [5.0, 7.5]
        assert reporter.completed is False
