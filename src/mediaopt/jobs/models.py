"""Job data model: keys, specs, handles, states and results.

A JobHandle is the only mutable object shared between a job's supervising
thread, its tracker threads and out-of-band cancellers. Every mutation goes
through a method that holds the handle's lock, and the two transitions
that must never both happen (commit and cancel) are arbitrated there.
"""

from __future__ import annotations

import logging
import threading
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from mediaopt.jobs.exceptions import JobError
from mediaopt.policy.models import EncodingPolicy

if TYPE_CHECKING:
    from mediaopt.executor.process import EngineProcess

logger = logging.getLogger(__name__)

JobKey = str


def make_job_key(input_path: Path | str) -> JobKey:
    """Canonical registry key for an input path."""
    return str(Path(input_path).expanduser().resolve())


class JobState(str, Enum):
    """Lifecycle states of a job."""

    QUEUED = "queued"
    PROBING = "probing"
    SELECTING = "selecting"
    RUNNING = "running"
    COMMITTING = "committing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobState.COMPLETED, JobState.FAILED, JobState.CANCELLED)


class JobOutcome(str, Enum):
    """Terminal outcome reported in a JobResult."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class CancelReason(str, Enum):
    """Why a job's cancellation signal was raised."""

    REQUESTED = "requested"
    SUPERSEDED = "superseded"
    STALLED = "stalled"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True)
class JobSpec:
    """Immutable description of one engine run.

    Derived once per job from the probe, the selector and the policy.
    """

    input_path: Path
    output_path: Path
    temp_directory: Path
    temp_output_path: Path
    progress_path: Path
    audio_stream_index: int | None
    threads: int
    duration: float
    policy: EncodingPolicy


@dataclass(frozen=True)
class ProgressSample:
    """A delivered progress percentage in [0, 100]."""

    percent: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.percent <= 100.0:
            raise ValueError(f"percent must be within [0, 100], got {self.percent}")


@dataclass(frozen=True)
class JobResult:
    """Terminal result of a job.

    Attributes:
        job_id: Unique job identifier.
        key: Canonical input path.
        outcome: completed, failed or cancelled.
        output_path: Destination path (only meaningful when completed).
        error: The failure, or None for success and plain cancellation.
        cancel_reason: Why the job was cancelled, if it was.
        final_progress: Last delivered percentage, None if none was.
        elapsed_seconds: Wall time from submission to terminal state.
    """

    job_id: str
    key: JobKey
    outcome: JobOutcome
    output_path: Path | None = None
    error: JobError | None = None
    cancel_reason: CancelReason | None = None
    final_progress: float | None = None
    elapsed_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome == JobOutcome.COMPLETED

    @property
    def error_kind(self) -> str | None:
        return self.error.kind if self.error is not None else None


class JobHandle:
    """Control handle for one active job.

    Holds the engine process reference, the cancellation signal and the
    last-progress timestamp. Registered in a JobRegistry while active.
    """

    def __init__(self, key: JobKey, job_id: str | None = None) -> None:
        self.job_id = job_id or uuid.uuid4().hex
        self.key = key
        self.created_at = time.monotonic()

        self._lock = threading.Lock()
        self._cancel_event = threading.Event()
        self._cancel_reason: CancelReason | None = None
        self._committing = False
        self._process: EngineProcess | None = None
        self._state = JobState.QUEUED
        self._last_progress_at = self.created_at

        # Set once the owning controller has finished teardown
        self.finished = threading.Event()

    def __repr__(self) -> str:
        return (
            f"JobHandle(job_id={self.job_id!r}, key={self.key!r}, "
            f"state={self.state.value})"
        )

    @property
    def state(self) -> JobState:
        with self._lock:
            return self._state

    def set_state(self, state: JobState) -> None:
        with self._lock:
            self._state = state

    @property
    def process(self) -> EngineProcess | None:
        with self._lock:
            return self._process

    def attach(self, process: EngineProcess) -> bool:
        """Record the spawned engine process.

        Returns:
            False if cancellation was already requested; the caller must
            terminate the process itself since no canceller will see it.
        """
        with self._lock:
            self._process = process
            return not self._cancel_event.is_set()

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def cancel_reason(self) -> CancelReason | None:
        with self._lock:
            return self._cancel_reason

    def request_cancel(self, reason: CancelReason) -> bool:
        """Raise the cancellation signal.

        The first reason wins. Refused once commit has begun, so a job that
        is publishing its output always finishes publishing.

        Returns:
            True if the signal is (now or already) raised, False if refused.
        """
        with self._lock:
            if self._committing:
                return False
            if not self._cancel_event.is_set():
                self._cancel_reason = reason
                self._cancel_event.set()
            return True

    def begin_commit(self) -> bool:
        """Enter the commit phase unless cancellation was requested.

        Returns:
            True if the caller may publish output.
        """
        with self._lock:
            if self._cancel_event.is_set():
                return False
            self._committing = True
            return True

    def mark_progress(self) -> None:
        """Record forward progress at the current monotonic time."""
        with self._lock:
            self._last_progress_at = time.monotonic()

    def seconds_since_progress(self) -> float:
        with self._lock:
            return time.monotonic() - self._last_progress_at
