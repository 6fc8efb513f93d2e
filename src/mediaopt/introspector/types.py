"""Typed stream descriptors produced by probe parsing."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StreamInfo:
    """One stream of a media container, as reported by ffprobe.

    Attributes:
        index: Absolute stream index within the container (``-map 0:<index>``).
        codec_type: "video", "audio", "subtitle", "data" or "attachment".
        codec_name: Codec short name, if reported.
        channels: Audio channel count, None for non-audio or unknown.
        language: Language tag (typically ISO 639-2), None if untagged.
        title: Stream title tag, None if untagged.
    """

    index: int
    codec_type: str
    codec_name: str | None = None
    channels: int | None = None
    language: str | None = None
    title: str | None = None

    @property
    def is_audio(self) -> bool:
        return self.codec_type == "audio"

