"""Stub implementation of MediaIntrospector for development and testing."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from mediaopt.introspector.types import StreamInfo
from mediaopt.jobs.exceptions import ProbeError

DEFAULT_STUB_STREAMS: tuple[StreamInfo, ...] = (
    StreamInfo(index=0, codec_type="video", codec_name="h264"),
    StreamInfo(
        index=1, codec_type="audio", codec_name="aac", channels=2, language="eng"
    ),
)


class StubIntrospector:
    """Stub that returns fixed probe results without running ffprobe.

    The input file must still exist, mirroring FFprobeIntrospector. Pass
    ``duration_error`` or ``streams_error`` to simulate probe failures.
    """

    def __init__(
        self,
        duration: float = 60.0,
        streams: Sequence[StreamInfo] = DEFAULT_STUB_STREAMS,
        duration_error: ProbeError | None = None,
        streams_error: ProbeError | None = None,
    ) -> None:
        self.duration = duration
        self.streams = list(streams)
        self.duration_error = duration_error
        self.streams_error = streams_error
        self.calls: list[tuple[str, Path]] = []

    def get_duration(self, path: Path) -> float:
        self.calls.append(("duration", path))
        self._check_exists(path)
        if self.duration_error is not None:
            raise self.duration_error
        if self.duration <= 0:
            raise ProbeError(f"Could not determine a positive duration for {path}")
        return self.duration

    def get_streams(self, path: Path) -> list[StreamInfo]:
        self.calls.append(("streams", path))
        self._check_exists(path)
        if self.streams_error is not None:
            raise self.streams_error
        return list(self.streams)

    @staticmethod
    def _check_exists(path: Path) -> None:
        if not path.exists():
            raise ProbeError(f"File not found: {path}")
