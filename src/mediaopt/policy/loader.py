"""Policy file loading and validation.

This module provides functions to load YAML policy files and validate
them using Pydantic models. Every section and key is optional; anything
omitted keeps the EncodingPolicy default.

Example policy file::

    schema_version: 1
    audio:
      codec: eac3
      bitrate: 448k
    selection:
      language_code: fre
      language_name: french
      on_missing_audio: video_only
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from mediaopt.policy.models import EncodingPolicy, NoAudioMode

SCHEMA_VERSION = 1

_BITRATE_PATTERN = re.compile(r"^\d+(\.\d+)?[kKmM]?$")


class PolicyValidationError(Exception):
    """Error during policy validation."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class VideoModel(BaseModel):
    """Pydantic model for the video section."""

    model_config = ConfigDict(extra="forbid")

    codec: str | None = None
    crf: int | None = Field(default=None, ge=0, le=63)
    preset: str | None = None


class AudioModel(BaseModel):
    """Pydantic model for the audio section."""

    model_config = ConfigDict(extra="forbid")

    codec: str | None = None
    channels: int | None = Field(default=None, ge=1, le=16)
    bitrate: str | None = None
    filters: list[str] | None = None
    title: str | None = None
    language: str | None = None

    @field_validator("bitrate")
    @classmethod
    def validate_bitrate(cls, v: str | None) -> str | None:
        if v is not None and not _BITRATE_PATTERN.match(v):
            raise ValueError(f"invalid bitrate {v!r} (expected e.g. '384k')")
        return v

    @field_validator("filters")
    @classmethod
    def validate_filters(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and any(not f.strip() for f in v):
            raise ValueError("filters must not contain empty entries")
        return v


class SelectionModel(BaseModel):
    """Pydantic model for the audio stream selection section."""

    model_config = ConfigDict(extra="forbid")

    language_code: str | None = None
    language_name: str | None = None
    preferred_channels: list[int] | None = None
    on_missing_audio: NoAudioMode | None = None

    @field_validator("language_code")
    @classmethod
    def validate_language_code(cls, v: str | None) -> str | None:
        if v is not None and not re.match(r"^[A-Za-z]{2,3}$", v):
            raise ValueError(f"invalid language code {v!r}")
        return v.lower() if v is not None else v

    @field_validator("preferred_channels")
    @classmethod
    def validate_channels(cls, v: list[int] | None) -> list[int] | None:
        if v is not None and any(c < 1 for c in v):
            raise ValueError("channel counts must be positive")
        return v


class OutputModel(BaseModel):
    """Pydantic model for the output section."""

    model_config = ConfigDict(extra="forbid")

    extra_args: list[str] | None = None


class PolicyModel(BaseModel):
    """Pydantic model for a complete policy file."""

    model_config = ConfigDict(extra="forbid")

    schema_version: Literal[1] = SCHEMA_VERSION
    video: VideoModel = Field(default_factory=VideoModel)
    audio: AudioModel = Field(default_factory=AudioModel)
    selection: SelectionModel = Field(default_factory=SelectionModel)
    output: OutputModel = Field(default_factory=OutputModel)


def load_policy(policy_path: Path) -> EncodingPolicy:
    """Load and validate an encoding policy from a YAML file.

    Args:
        policy_path: Path to the YAML policy file.

    Returns:
        Validated EncodingPolicy.

    Raises:
        PolicyValidationError: If the policy file is invalid.
        FileNotFoundError: If the policy file does not exist.
    """
    if not policy_path.exists():
        raise FileNotFoundError(f"Policy file not found: {policy_path}")

    try:
        with open(policy_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise PolicyValidationError(f"Invalid YAML syntax: {e}") from e

    if data is None:
        raise PolicyValidationError("Policy file is empty")

    if not isinstance(data, dict):
        raise PolicyValidationError("Policy file must be a YAML mapping")

    return load_policy_from_dict(data)


def load_policy_from_dict(data: dict[str, Any]) -> EncodingPolicy:
    """Load and validate an encoding policy from a dictionary.

    Raises:
        PolicyValidationError: If the policy data is invalid.
    """
    try:
        model = PolicyModel.model_validate(data)
    except ValidationError as e:
        raise PolicyValidationError(
            _format_validation_error(e), field=_first_error_location(e)
        ) from e

    try:
        return _convert_to_policy(model)
    except ValueError as e:
        # Cross-field rules enforced by EncodingPolicy itself
        raise PolicyValidationError(f"Policy validation failed: {e}") from e


def _convert_to_policy(model: PolicyModel) -> EncodingPolicy:
    """Overlay the model's explicitly set values onto EncodingPolicy defaults."""
    values: dict[str, Any] = {}

    video = model.video
    if video.codec is not None:
        values["video_codec"] = video.codec
    if video.crf is not None:
        values["video_crf"] = video.crf
    if video.preset is not None:
        values["video_preset"] = video.preset

    audio = model.audio
    if audio.codec is not None:
        values["audio_codec"] = audio.codec
    if audio.channels is not None:
        values["audio_channels"] = audio.channels
    if audio.bitrate is not None:
        values["audio_bitrate"] = audio.bitrate
    if audio.filters is not None:
        values["audio_filters"] = tuple(audio.filters)
    # An explicit empty string drops the metadata tag
    if audio.title is not None:
        values["audio_title"] = audio.title or None
    if audio.language is not None:
        values["audio_language"] = audio.language or None

    selection = model.selection
    if selection.language_code is not None:
        values["target_language_code"] = selection.language_code
    if selection.language_name is not None:
        values["target_language_name"] = selection.language_name
    if selection.preferred_channels is not None:
        values["preferred_channels"] = tuple(selection.preferred_channels)
    if selection.on_missing_audio is not None:
        values["on_missing_audio"] = selection.on_missing_audio

    if model.output.extra_args is not None:
        values["extra_output_args"] = tuple(model.output.extra_args)

    return EncodingPolicy(**values)


def _first_error_location(error: ValidationError) -> str | None:
    errors = error.errors()
    if not errors:
        return None
    return ".".join(str(x) for x in errors[0].get("loc", [])) or None


def _format_validation_error(error: ValidationError) -> str:
    """Format a Pydantic validation error into a user-friendly message."""
    errors = error.errors()
    if errors:
        first_error = errors[0]
        loc = ".".join(str(x) for x in first_error.get("loc", []))
        msg = first_error.get("msg", str(error))
        if loc:
            return f"Policy validation failed: {loc}: {msg}"
        return f"Policy validation failed: {msg}"
    return f"Policy validation failed: {error}"
