"""Encoding policy data model.

An EncodingPolicy is the static half of a JobSpec: everything about the
engine command line that does not depend on the particular input file.
The defaults reproduce the stock "2.1 Optimized" audio treatment: video
copied untouched, the selected audio track downmixed to loudness
normalized AC-3 stereo.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_AUDIO_FILTERS: tuple[str, ...] = (
    "volume=1.5",
    "dynaudnorm=f=150:g=15:p=0.7",
    "loudnorm=I=-16:TP=-1.5:LRA=11",
)


class NoAudioMode(str, Enum):
    """What to do when the input has no audio stream."""

    FAIL = "fail"
    VIDEO_ONLY = "video_only"


@dataclass(frozen=True)
class EncodingPolicy:
    """Static encoding parameters for the engine command line."""

    # Video
    video_codec: str = "copy"
    video_crf: int | None = None
    video_preset: str | None = None

    # Audio
    audio_codec: str = "ac3"
    audio_channels: int = 2
    audio_bitrate: str = "384k"
    audio_filters: tuple[str, ...] = DEFAULT_AUDIO_FILTERS
    audio_title: str | None = "2.1 Optimized"
    audio_language: str | None = "eng"

    # Audio stream selection
    target_language_code: str = "eng"
    target_language_name: str = "english"
    preferred_channels: tuple[int, ...] = (6, 2)
    on_missing_audio: NoAudioMode = NoAudioMode.FAIL

    # Extra output options placed before -threads
    extra_output_args: tuple[str, ...] = ("-movflags", "+faststart")

    def __post_init__(self) -> None:
        if self.audio_channels < 1:
            raise ValueError(
                f"audio_channels must be at least 1, got {self.audio_channels}"
            )
        if self.video_crf is not None and not 0 <= self.video_crf <= 63:
            raise ValueError(
                f"video_crf must be between 0 and 63, got {self.video_crf}"
            )
        if self.video_codec == "copy" and (
            self.video_crf is not None or self.video_preset is not None
        ):
            raise ValueError("video_crf and video_preset require a video encoder")
        if any(c < 1 for c in self.preferred_channels):
            raise ValueError("preferred_channels must be positive channel counts")

    @property
    def audio_filter_chain(self) -> str | None:
        """The -af argument, or None when no filters are configured."""
        return ",".join(self.audio_filters) if self.audio_filters else None
