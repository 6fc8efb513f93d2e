"""Custom exceptions for supervised transcoding jobs.

Every failure a job can end with is a JobError subclass. The controller
never lets one escape submit(); each is reported as the job's terminal
result instead.
"""

from __future__ import annotations


class JobError(Exception):
    """Base exception for job errors.

    Attributes:
        kind: Short machine-readable error category.
    """

    kind = "internal"


class ProbeError(JobError):
    """Raised when the input's duration or streams cannot be determined.

    Fatal: no job starts without a duration.
    """

    kind = "probe"


class NoAudioStreamError(JobError):
    """Raised when the input has no audio stream to select."""

    kind = "no_audio"

    def __init__(self, path: str | None = None) -> None:
        self.path = path
        if path:
            super().__init__(f"No audio streams found in {path}")
        else:
            super().__init__("No audio streams found")


class SpawnError(JobError):
    """Raised when the engine executable cannot be launched."""

    kind = "spawn"


class EngineExitError(JobError):
    """Raised when the engine exits with a non-zero status.

    Attributes:
        returncode: The engine's exit status.
        output_tail: Last lines of the engine's diagnostic output.
    """

    kind = "engine_exit"

    def __init__(self, returncode: int, output_tail: str = "") -> None:
        self.returncode = returncode
        self.output_tail = output_tail
        message = f"Engine exited with code {returncode}"
        if output_tail.strip():
            message = f"{message}: {output_tail.strip().splitlines()[-1]}"
        super().__init__(message)


class StalledError(JobError):
    """Raised when no forward progress was observed within the stall timeout.

    Attributes:
        seconds: Seconds elapsed since the last forward progress.
    """

    kind = "stalled"

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"No progress for {seconds:.0f}s, engine terminated")


class JobTimeoutError(JobError):
    """Raised when the engine exceeded the configured maximum runtime."""

    kind = "timeout"

    def __init__(self, limit: float) -> None:
        self.limit = limit
        super().__init__(f"Engine exceeded maximum runtime of {limit:.0f}s")


class CommitError(JobError):
    """Raised when the finished output cannot be published.

    The temporary output is still removed after this error.
    """

    kind = "commit"
