"""Engine process lifecycle: spawn, escalating termination and waiting.

terminate() is the single path used for explicit cancellation, for
superseding a duplicate job, for stall cancellation and for the runtime
limit. It is idempotent and safe to call while another thread is blocked
in wait().
"""

from __future__ import annotations

import logging
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO

from mediaopt.executor.command import build_command
from mediaopt.jobs.exceptions import SpawnError
from mediaopt.jobs.models import JobSpec
from mediaopt.tools.resolver import ToolNotFoundError, require_tool

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExitStatus:
    """How the engine process ended.

    Attributes:
        returncode: Process exit status (negative signal number on POSIX
            when killed by a signal).
        terminated: True if terminate() acted on the process while it was
            still running.
    """

    returncode: int
    terminated: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.terminated


class EngineProcess:
    """A running engine subprocess plus its termination bookkeeping."""

    def __init__(self, popen: subprocess.Popen, command: list[str]) -> None:
        self.popen = popen
        self.command = command
        self.started_at = time.monotonic()
        self._terminate_lock = threading.Lock()
        self._terminated = False

    def __repr__(self) -> str:
        return f"EngineProcess(pid={self.pid}, returncode={self.popen.returncode})"

    @property
    def pid(self) -> int:
        return self.popen.pid

    @property
    def output(self) -> IO[str] | None:
        """Merged stdout+stderr diagnostic stream."""
        return self.popen.stdout

    @property
    def terminated(self) -> bool:
        return self._terminated

    def is_running(self) -> bool:
        return self.popen.poll() is None


class ProcessSupervisor:
    """Starts engine processes and owns their termination.

    Args:
        ffmpeg_path: Explicit engine path. Resolved lazily from PATH if None.
        grace_period: Seconds to wait after the polite signal before killing.
    """

    DEFAULT_GRACE_PERIOD: float = 5.0

    def __init__(
        self,
        ffmpeg_path: Path | None = None,
        grace_period: float = DEFAULT_GRACE_PERIOD,
    ) -> None:
        self._configured_path = ffmpeg_path
        self._tool_path: Path | None = None
        self.grace_period = grace_period

    @property
    def tool_path(self) -> Path:
        """Get path to ffmpeg, verifying availability.

        Raises:
            SpawnError: If ffmpeg is not available.
        """
        if self._tool_path is None:
            try:
                self._tool_path = require_tool("ffmpeg", self._configured_path)
            except ToolNotFoundError as e:
                raise SpawnError(str(e)) from e
        return self._tool_path

    def build_command(self, spec: JobSpec) -> list[str]:
        return build_command(spec, spec.progress_path, self.tool_path)

    def start(self, spec: JobSpec) -> EngineProcess:
        """Spawn the engine for ``spec``.

        stdin is closed and stdout/stderr are merged into one text stream.
        The child gets its own session so a terminal Ctrl+C reaches only
        this process, which then cancels through terminate().

        Raises:
            SpawnError: If the executable cannot be launched.
        """
        cmd = self.build_command(spec)
        logger.debug("Starting engine: %s", " ".join(cmd))
        try:
            popen = subprocess.Popen(  # nosec B603 - command built from JobSpec
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                bufsize=1,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnError(f"Could not launch {cmd[0]}: {e}") from e

        logger.info(
            "Engine started (pid %d)",
            popen.pid,
            extra={"pid": popen.pid, "threads": spec.threads},
        )
        return EngineProcess(popen, cmd)

    def terminate(self, process: EngineProcess) -> None:
        """Stop the engine: polite signal, grace period, then force kill.

        Idempotent. Concurrent callers block until the first one has reaped
        the process. Returns only once the process has exited.
        """
        with process._terminate_lock:
            popen = process.popen
            if popen.poll() is not None:
                return

            process._terminated = True
            logger.info("Terminating engine (pid %d)", popen.pid)
            try:
                popen.terminate()
            except ProcessLookupError:
                # Exited between poll() and the signal
                popen.wait()
                return

            try:
                popen.wait(timeout=self.grace_period)
                return
            except subprocess.TimeoutExpired:
                logger.warning(
                    "Engine (pid %d) ignored termination for %.1fs, killing",
                    popen.pid,
                    self.grace_period,
                )

            try:
                popen.kill()
            except ProcessLookupError:
                pass
            popen.wait()

    def wait(self, process: EngineProcess, timeout: float | None = None) -> ExitStatus:
        """Block until the engine exits.

        Safe to run concurrently with terminate(); a termination unblocks
        the waiter with ``terminated=True``.

        Raises:
            subprocess.TimeoutExpired: If ``timeout`` elapses first.
        """
        returncode = process.popen.wait(timeout=timeout)
        # terminate() may still be escalating; let it finish so the flag is final
        with process._terminate_lock:
            terminated = process._terminated
        return ExitStatus(returncode=returncode, terminated=terminated)
