"""MediaIntrospector interface for duration and stream probing."""

from pathlib import Path
from typing import Protocol

from mediaopt.introspector.types import StreamInfo


class MediaIntrospector(Protocol):
    """Protocol for media probing implementations.

    The job controller depends only on this protocol, so tests and dry runs
    can substitute StubIntrospector for ffprobe.
    """

    def get_duration(self, path: Path) -> float:
        """Return the total duration of the input in seconds.

        Raises:
            ProbeError: If the duration cannot be determined or is not > 0.
        """
        ...

    def get_streams(self, path: Path) -> list[StreamInfo]:
        """Return the input's streams ordered by index.

        Raises:
            ProbeError: If the streams cannot be listed.
        """
        ...
