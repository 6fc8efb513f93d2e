"""Progress reporting for CLI and tests.

Reporters are plain progress callbacks (``reporter(percent)``) with a
finishing hook, so they plug straight into JobController.submit().
"""

from __future__ import annotations

import logging
import sys
import threading
from typing import Protocol, TextIO

logger = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    """Protocol for job progress reporting.

    Implementations provide context-specific progress display:
    - CLI: stderr progress line
    - Tests: null/silent reporter
    """

    def __call__(self, percent: float) -> None:
        """Report progress percentage (0-100)."""
        ...

    def on_complete(self, success: bool = True) -> None:
        """Signal that the job reached a terminal state."""
        ...


class StderrProgressReporter:
    """Progress reporter that writes an in-place percentage line to stderr."""

    def __init__(
        self, label: str = "", enabled: bool = True, stream: TextIO | None = None
    ) -> None:
        """Initialize stderr progress reporter.

        Args:
            label: Text shown before the percentage (e.g. the file name).
            enabled: If False, suppresses output (for JSON mode or tests).
            stream: Output stream, stderr by default.
        """
        self.label = label
        self.enabled = enabled
        self._stream = stream
        self._lock = threading.Lock()
        self._written = False

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stderr

    def __call__(self, percent: float) -> None:
        if not self.enabled:
            return
        prefix = f"{self.label}: " if self.label else ""
        with self._lock:
            self.stream.write(f"\r{prefix}{percent:5.1f}%")
            self.stream.flush()
            self._written = True

    def on_complete(self, success: bool = True) -> None:
        """Finish the progress line with a newline."""
        if not self.enabled:
            return
        with self._lock:
            if self._written:
                self.stream.write("\n")
                self.stream.flush()


class LoggingProgressReporter:
    """Reports progress through the logger in coarse steps.

    Used when stderr is not a terminal, so log files get a readable
    progress trail instead of carriage-return updates.
    """

    def __init__(self, step: float = 10.0) -> None:
        self.step = step
        self._next = 0.0

    def __call__(self, percent: float) -> None:
        if percent >= self._next:
            logger.info("Progress: %.1f%%", percent, extra={"percent": percent})
            while self._next <= percent:
                self._next += self.step

    def on_complete(self, success: bool = True) -> None:
        pass


class NullProgressReporter:
    """Silent reporter that records delivered samples, for tests."""

    def __init__(self) -> None:
        self.samples: list[float] = []
        self.completed: bool | None = None

    def __call__(self, percent: float) -> None:
        self.samples.append(percent)

    def on_complete(self, success: bool = True) -> None:
        self.completed = success
