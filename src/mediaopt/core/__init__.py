"""Core utilities package.

Pure helpers shared across mediaopt: subprocess invocation for the probe
tool and display formatting for the CLI.
"""

from mediaopt.core.formatting import (
    format_duration,
    format_file_size,
    truncate_filename,
)
from mediaopt.core.subprocess_utils import run_command

__all__ = [
    "format_duration",
    "format_file_size",
    "run_command",
    "truncate_filename",
]
