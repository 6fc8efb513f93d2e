"""Unit tests for logging context module."""

import contextvars
import logging
import threading

from mediaopt.logging.context import (
    JobContextFilter,
    clear_job_context,
    get_job_context,
    job_context,
    set_job_context,
)


def _record() -> logging.LogRecord:
    return logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="",
        lineno=0,
        msg="hello",
        args=(),
        exc_info=None,
    )


class TestSetAndGetJobContext:
    """Tests for set_job_context and get_job_context functions."""

    def test_set_and_get(self) -> None:
        set_job_context("abc123", "/media/movie.mkv")
        assert get_job_context() == ("abc123", "/media/movie.mkv")
        clear_job_context()

    def test_clear_context(self) -> None:
        set_job_context("abc123")
        clear_job_context()
        assert get_job_context() == (None, None)


class TestJobContextManager:
    """Tests for job_context context manager."""

    def test_sets_and_restores(self) -> None:
        set_job_context("outer", "/outer")
        with job_context("inner", "/inner"):
            assert get_job_context() == ("inner", "/inner")
        assert get_job_context() == ("outer", "/outer")
        clear_job_context()

    def test_restores_on_exception(self) -> None:
        try:
            with job_context("boom"):
                raise RuntimeError("x")
        except RuntimeError:
            pass
        assert get_job_context() == (None, None)

    def test_context_copied_into_thread(self) -> None:
        """A thread started with ctx.run sees the caller's job context."""
        seen: list[tuple] = []
        with job_context("job-1", "/a.mkv"):
            ctx = contextvars.copy_context()
        thread = threading.Thread(
            target=ctx.run, args=(lambda: seen.append(get_job_context()),)
        )
        thread.start()
        thread.join()
        assert seen == [("job-1", "/a.mkv")]

    def test_plain_thread_does_not_inherit(self) -> None:
        seen: list[tuple] = []
        with job_context("job-1"):
            thread = threading.Thread(target=lambda: seen.append(get_job_context()))
            thread.start()
            thread.join()
        assert seen == [(None, None)]


class TestJobContextFilter:
    """Tests for JobContextFilter."""

    def test_adds_job_fields(self) -> None:
        record = _record()
        with job_context("0123456789abcdef", "/media/movie.mkv"):
            assert JobContextFilter().filter(record) is True
        assert record.job_id == "0123456789abcdef"
        assert record.job_key == "/media/movie.mkv"
        assert record.job_tag == "[job:01234567] "

    def test_empty_tag_outside_job(self) -> None:
        record = _record()
        JobContextFilter().filter(record)
        assert record.job_id is None
        assert record.job_tag == ""
