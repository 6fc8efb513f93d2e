"""Job context for structured logging.

Propagates the current job's id and key through contextvars so that every
log record emitted while a job runs (including from its helper threads) is
tagged with them.
"""

from __future__ import annotations

import contextvars
import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Generator

_job_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_id", default=None
)
_job_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "job_key", default=None
)


def set_job_context(job_id: str, job_key: str | None = None) -> None:
    """Set the current job context.

    Args:
        job_id: Job identifier.
        job_key: Canonical input path the job is keyed by.
    """
    _job_id.set(job_id)
    _job_key.set(job_key)


def clear_job_context() -> None:
    """Clear the current job context."""
    _job_id.set(None)
    _job_key.set(None)


def get_job_context() -> tuple[str | None, str | None]:
    """Get current job context.

    Returns:
        Tuple of (job_id, job_key), either may be None.
    """
    return _job_id.get(), _job_key.get()


@contextmanager
def job_context(
    job_id: str, job_key: str | None = None
) -> Generator[None, None, None]:
    """Context manager for job processing context.

    Sets job context on entry, restores the previous context on exit.

    Example:
        with job_context(handle.job_id, handle.key):
            logger.info("Starting engine")  # Tagged with job id and key
    """
    old_job_id = _job_id.get()
    old_job_key = _job_key.get()
    try:
        set_job_context(job_id, job_key)
        yield
    finally:
        _job_id.set(old_job_id)
        _job_key.set(old_job_key)


class JobContextFilter(logging.Filter):
    """Logging filter that injects job context into log records.

    Adds job_id and job_key attributes to LogRecord from contextvars. For
    text format, also adds a compact job_tag like [job:1a2b3c4d].
    """

    def filter(self, record: logging.LogRecord) -> bool:
        job_id, job_key = get_job_context()

        record.job_id = job_id
        record.job_key = job_key
        record.job_tag = f"[job:{job_id[:8]}] " if job_id else ""

        return True
