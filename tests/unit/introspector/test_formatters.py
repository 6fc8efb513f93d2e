"""Tests for probe result formatters."""

import json
from pathlib import Path

from mediaopt.introspector.formatters import (
    format_human,
    format_json,
    format_stream_line,
)
from mediaopt.introspector.types import StreamInfo
from mediaopt.policy.audio_selection import AudioSelection, SelectionTier

STREAMS = [
    StreamInfo(index=0, codec_type="video", codec_name="h264"),
    StreamInfo(
        index=1, codec_type="audio", codec_name="ac3", channels=6, language="eng"
    ),
    StreamInfo(
        index=2,
        codec_type="audio",
        codec_name="aac",
        channels=2,
        language="und",
        title="Commentary",
    ),
]


class TestFormatStreamLine:
    """Tests for format_stream_line."""

    def test_full_line(self) -> None:
        assert format_stream_line(STREAMS[1]) == "#1 [audio] ac3 6ch eng"

    def test_und_language_hidden_title_quoted(self) -> None:
        assert format_stream_line(STREAMS[2]) == '#2 [audio] aac 2ch "Commentary"'


class TestFormatHuman:
    """Tests for format_human."""

    def test_marks_selected_stream(self) -> None:
        selection = AudioSelection(index=1, tier=SelectionTier.LANGUAGE_TAG)
        text = format_human(Path("/m/a.mkv"), 3723.0, STREAMS, selection)
        assert "Duration: 1:02:03" in text
        assert "  * #1 [audio] ac3 6ch eng" in text
        assert "    #2 [audio]" in text
        assert "#0 [video]" not in text
        assert "Selected: stream #1 (matched by language_tag)" in text

    def test_no_audio(self) -> None:
        text = format_human(Path("/m/a.mkv"), 10.0, STREAMS[:1], None)
        assert "(no audio streams found)" in text
        assert "Selected: none" in text


class TestFormatJson:
    """Tests for format_json."""

    def test_structure(self) -> None:
        selection = AudioSelection(index=2, tier=SelectionTier.FIRST_AUDIO)
        data = json.loads(format_json(Path("/m/a.mkv"), 10.5, STREAMS, selection))
        assert data["file"] == "/m/a.mkv"
        assert data["duration_seconds"] == 10.5
        assert len(data["streams"]) == 3
        assert data["streams"][2]["title"] == "Commentary"
        assert data["selected_audio"] == {"index": 2, "tier": "first_audio"}

    def test_no_selection(self) -> None:
        data = json.loads(format_json(Path("/m/a.mkv"), 10.5, [], None))
        assert data["selected_audio"] is None
