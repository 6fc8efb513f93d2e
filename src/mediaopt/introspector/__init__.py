"""Introspector module for mediaopt.

This module provides media probing capabilities:

- MediaIntrospector: Protocol defining the probing interface
- FFprobeIntrospector: Production implementation using ffprobe
- StubIntrospector: Stub implementation for testing and dry runs
- StreamInfo: Typed stream descriptor produced by parsing
"""

from mediaopt.introspector.ffprobe import FFprobeIntrospector
from mediaopt.introspector.formatters import (
    format_human,
    format_json,
    format_stream_line,
    stream_to_dict,
)
from mediaopt.introspector.interface import MediaIntrospector
from mediaopt.introspector.stub import StubIntrospector
from mediaopt.introspector.types import StreamInfo

__all__ = [
    "FFprobeIntrospector",
    "MediaIntrospector",
    "StreamInfo",
    "StubIntrospector",
    "format_human",
    "format_json",
    "format_stream_line",
    "stream_to_dict",
]
