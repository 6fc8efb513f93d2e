"""Encoding policy: static engine parameters and audio stream selection."""

from mediaopt.policy.audio_selection import (
    AudioSelection,
    SelectionTier,
    select_audio_stream,
)
from mediaopt.policy.loader import (
    PolicyValidationError,
    load_policy,
    load_policy_from_dict,
)
from mediaopt.policy.models import DEFAULT_AUDIO_FILTERS, EncodingPolicy, NoAudioMode

__all__ = [
    "DEFAULT_AUDIO_FILTERS",
    "AudioSelection",
    "EncodingPolicy",
    "NoAudioMode",
    "PolicyValidationError",
    "SelectionTier",
    "load_policy",
    "load_policy_from_dict",
    "select_audio_stream",
]
