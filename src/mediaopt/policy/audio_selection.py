"""Audio stream selection.

Picks the one audio stream to carry into the output using a tiered
preference. Operates on parsed StreamInfo descriptors only, so the decision
logic is independent of the probe tool's output format.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from mediaopt.introspector.types import StreamInfo
from mediaopt.jobs.exceptions import NoAudioStreamError

logger = logging.getLogger(__name__)


class SelectionTier(str, Enum):
    """Which rule chose the stream, in priority order."""

    LANGUAGE_TAG = "language_tag"
    TITLE = "title"
    CHANNELS = "channels"
    FIRST_AUDIO = "first_audio"


@dataclass(frozen=True)
class AudioSelection:
    """Result of audio stream selection."""

    index: int
    tier: SelectionTier


def select_audio_stream(
    streams: Iterable[StreamInfo],
    language_code: str = "eng",
    language_name: str = "english",
    preferred_channels: Sequence[int] = (6, 2),
) -> AudioSelection:
    """Select the audio stream to keep.

    Tiers, first match wins, ties broken by lowest stream index:

    1. language tag equals ``language_code`` (case-insensitive)
    2. title contains ``language_name`` (case-insensitive)
    3. channel count is one of ``preferred_channels``
    4. the first audio stream

    Args:
        streams: Probed streams of any type; non-audio streams are ignored.
        language_code: Target language tag, e.g. "eng".
        language_name: Target language name matched against titles.
        preferred_channels: Channel counts accepted by the channel tier.

    Returns:
        AudioSelection with the chosen absolute stream index and the tier
        that matched.

    Raises:
        NoAudioStreamError: If there are no audio streams at all.
    """
    audio = sorted((s for s in streams if s.is_audio), key=lambda s: s.index)
    if not audio:
        raise NoAudioStreamError()

    code = language_code.casefold()
    name = language_name.casefold()
    wanted_channels = set(preferred_channels)

    tiers = (
        (
            SelectionTier.LANGUAGE_TAG,
            lambda s: s.language is not None and s.language.casefold() == code,
        ),
        (
            SelectionTier.TITLE,
            lambda s: bool(name) and s.title is not None and name in s.title.casefold(),
        ),
        (
            SelectionTier.CHANNELS,
            lambda s: s.channels is not None and s.channels in wanted_channels,
        ),
    )

    for tier, matches in tiers:
        for stream in audio:
            if matches(stream):
                return _selected(stream, tier)

    return _selected(audio[0], SelectionTier.FIRST_AUDIO)


def _selected(stream: StreamInfo, tier: SelectionTier) -> AudioSelection:
    logger.debug(
        "Selected audio stream %d",
        stream.index,
        extra={"stream_index": stream.index, "tier": tier.value},
    )
    return AudioSelection(index=stream.index, tier=tier)
