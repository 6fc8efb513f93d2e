"""Progress tracking and liveness enforcement for a running engine.

Per job, ProgressTracker runs two helper threads alongside the supervising
thread that waits on the engine:

- the progress tail follows the ``-progress`` side-channel file, turns
  ``out_time`` lines into percentages and enforces the stall timeout and
  the runtime limit;
- the diagnostic drain reads the engine's merged stdout/stderr, logs it and
  keeps the last lines for failure messages.

Neither thread decides the job's outcome. The only thing they can do to
the job is raise its cancellation signal and terminate the engine.
"""

from __future__ import annotations

import collections
import contextvars
import logging
import threading
import time
from collections.abc import Callable
from pathlib import Path
from typing import IO

from mediaopt.executor.process import EngineProcess, ProcessSupervisor
from mediaopt.jobs.exceptions import JobError, JobTimeoutError, StalledError
from mediaopt.jobs.models import CancelReason, JobHandle, ProgressSample
from mediaopt.logging.config import ENGINE_LOGGER_NAME
from mediaopt.tools.ffmpeg_progress import is_progress_end, parse_progress_percent

logger = logging.getLogger(__name__)
engine_logger = logging.getLogger(ENGINE_LOGGER_NAME)

ProgressCallback = Callable[[float], None]

_ERROR_KEYWORDS = ("error", "fail")


class ProgressChannel:
    """Serialized, monotonic delivery of progress samples to one callback.

    One lock covers the monotonic filter, the callback invocation and
    close(), so the callback never runs concurrently with itself and never
    runs once close() has returned.
    """

    def __init__(self, callback: ProgressCallback | None = None) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._last: ProgressSample | None = None
        self._closed = False

    @property
    def last(self) -> float | None:
        with self._lock:
            return self._last.percent if self._last is not None else None

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def offer(self, percent: float) -> bool:
        """Deliver ``percent`` if it is strictly greater than the last one.

        Returns:
            True if the sample counted as forward progress.
        """
        with self._lock:
            if self._closed:
                return False
            if self._last is not None and percent <= self._last.percent:
                return False
            self._last = ProgressSample(percent)
            if self._callback is not None:
                try:
                    self._callback(percent)
                except Exception:
                    logger.exception("Progress callback raised; continuing")
            return True

    def close(self) -> None:
        """Stop delivery. No callback fires after this returns."""
        with self._lock:
            self._closed = True


class ProgressTracker:
    """Tails the progress feed and drains diagnostics for one engine run.

    Args:
        handle: The job's control handle.
        process: The running engine.
        supervisor: Used to terminate the engine on stall or timeout.
        duration: Total media duration from the probe, in seconds.
        progress_path: The ``-progress`` side-channel file.
        channel: Delivery channel for progress samples.
        stall_timeout: Seconds without forward progress before cancelling.
        max_runtime: Hard runtime limit in seconds, or None.
        poll_interval: Sleep between polls when the feed has no new data.
        drain_period: Seconds to keep reading the feed after engine exit.
        tail_lines: Diagnostic lines retained for failure messages.
    """

    DIAGNOSTIC_JOIN_TIMEOUT: float = 5.0

    def __init__(
        self,
        handle: JobHandle,
        process: EngineProcess,
        supervisor: ProcessSupervisor,
        duration: float,
        progress_path: Path,
        channel: ProgressChannel,
        *,
        stall_timeout: float = 300.0,
        max_runtime: float | None = None,
        poll_interval: float = 0.1,
        drain_period: float = 2.0,
        tail_lines: int = 20,
    ) -> None:
        self._handle = handle
        self._process = process
        self._supervisor = supervisor
        self._duration = duration
        self._progress_path = progress_path
        self._channel = channel
        self._stall_timeout = stall_timeout
        self._max_runtime = max_runtime
        self._poll_interval = poll_interval
        self._drain_period = drain_period

        self._exited = threading.Event()
        self._end_seen = False
        self._failure: JobError | None = None
        self._failure_lock = threading.Lock()
        self._output_tail: collections.deque[str] = collections.deque(
            maxlen=tail_lines
        )
        self._tail_thread: threading.Thread | None = None
        self._drain_thread: threading.Thread | None = None
        self._started_at = time.monotonic()

    @property
    def failure(self) -> JobError | None:
        """StalledError or JobTimeoutError if this tracker cancelled the job."""
        with self._failure_lock:
            return self._failure

    def output_tail(self) -> str:
        """Last diagnostic lines, newest last."""
        return "\n".join(self._output_tail)

    def start(self) -> None:
        """Start the progress tail and diagnostic drain threads."""
        self._started_at = time.monotonic()
        self._handle.mark_progress()
        self._tail_thread = self._spawn(self._tail_progress, "progress-tail")
        self._drain_thread = self._spawn(self._drain_diagnostics, "diagnostic-drain")

    def finish(self) -> None:
        """Tell the tracker the engine exited and wait for both threads.

        The tail keeps reading for the drain period (or until
        ``progress=end``) before this returns.
        """
        self._exited.set()
        if self._tail_thread is not None:
            self._tail_thread.join()
        if self._drain_thread is not None:
            self._drain_thread.join(timeout=self.DIAGNOSTIC_JOIN_TIMEOUT)
            if self._drain_thread.is_alive():
                # A child of the engine still holds the pipe open
                logger.error(
                    "Diagnostic reader did not finish after engine exit. "
                    "Thread will be abandoned."
                )
                return
        output = self._process.output
        if output is not None:
            try:
                output.close()
            except OSError as e:
                logger.debug("Closing engine output failed: %s", e)

    def _spawn(self, target: Callable[[], None], role: str) -> threading.Thread:
        # Each thread gets its own context copy so log records keep the job tags
        ctx = contextvars.copy_context()
        thread = threading.Thread(
            target=ctx.run,
            args=(target,),
            name=f"{role}-{self._handle.job_id[:8]}",
            daemon=True,
        )
        thread.start()
        return thread

    # Progress tail

    def _tail_progress(self) -> None:
        feed: IO[str] | None = None
        buffer = ""
        drain_deadline: float | None = None
        try:
            while True:
                if feed is None and not self._end_seen:
                    feed = self._open_feed()

                chunk = feed.read() if feed is not None and not self._end_seen else ""
                if chunk:
                    buffer += chunk
                    *lines, buffer = buffer.split("\n")
                    for line in lines:
                        self._handle_line(line)
                    continue

                if self._exited.is_set():
                    if self._end_seen:
                        break
                    now = time.monotonic()
                    if drain_deadline is None:
                        drain_deadline = now + self._drain_period
                    elif now >= drain_deadline:
                        break
                    time.sleep(self._poll_interval)
                else:
                    self._check_liveness()
                    self._exited.wait(self._poll_interval)
        except Exception:
            logger.exception("Progress tail failed")
        finally:
            if buffer.strip():
                self._handle_line(buffer)
            if feed is not None:
                feed.close()

    def _open_feed(self) -> IO[str] | None:
        try:
            return open(self._progress_path, encoding="utf-8", errors="replace")
        except FileNotFoundError:
            # The engine creates the file on its first progress write
            return None

    def _handle_line(self, line: str) -> None:
        if is_progress_end(line):
            self._end_seen = True
            return
        percent = parse_progress_percent(line, self._duration)
        if percent is None:
            return
        if self._channel.offer(percent):
            self._handle.mark_progress()

    # Liveness

    def _check_liveness(self) -> None:
        if self._failure is not None or self._handle.cancel_requested:
            return

        if self._max_runtime is not None:
            runtime = time.monotonic() - self._started_at
            if runtime >= self._max_runtime:
                self._cancel(CancelReason.TIMED_OUT, JobTimeoutError(self._max_runtime))
                return

        # After progress=end the engine is only finalizing the container
        if self._end_seen:
            return

        idle = self._handle.seconds_since_progress()
        if idle >= self._stall_timeout:
            self._cancel(CancelReason.STALLED, StalledError(idle))

    def _cancel(self, reason: CancelReason, error: JobError) -> None:
        if not self._handle.request_cancel(reason):
            return
        if self._handle.cancel_reason is reason:
            with self._failure_lock:
                self._failure = error
            logger.warning(
                "%s; terminating engine",
                error,
                extra={"cancel_reason": reason.value},
            )
        self._supervisor.terminate(self._process)

    # Diagnostic drain

    def _drain_diagnostics(self) -> None:
        output = self._process.output
        if output is None:
            return
        try:
            for raw in output:
                line = raw.rstrip()
                if not line:
                    continue
                self._output_tail.append(line)
                lowered = line.lower()
                if any(word in lowered for word in _ERROR_KEYWORDS):
                    engine_logger.warning("%s", line)
                else:
                    engine_logger.debug("%s", line)
        except (ValueError, OSError) as e:
            # Pipe closed under us
            logger.debug("Diagnostic reader stopped: %s", e)
