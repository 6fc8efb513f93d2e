"""MEDIAOPT_* environment variables and the value formats they accept.

Job timings take an optional unit (``300``, ``90s``, ``5m``, ``1.5h``,
``250ms``) and sizes take binary units (``500M``, ``10GiB``). The TOML
loader uses the same parsers for string values, so ``stall_timeout = "5m"``
in the config file and ``MEDIAOPT_STALL_TIMEOUT=5m`` mean the same thing.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DURATION_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)
_DURATION_UNITS = {"": 1.0, "ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}

_SIZE_PATTERN = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*([kmgt]?)(?:i?b)?\s*$", re.IGNORECASE
)
_SIZE_SHIFTS = {"": 0, "k": 10, "m": 20, "g": 30, "t": 40}

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def parse_duration(text: str) -> float:
    """Parse a duration into seconds.

    Examples:
        >>> parse_duration("300")
        300.0
        >>> parse_duration("5m")
        300.0
        >>> parse_duration("250ms")
        0.25

    Raises:
        ValueError: If the text is not a number with an optional unit.
    """
    match = _DURATION_PATTERN.match(text)
    if match is None:
        raise ValueError(f"invalid duration {text!r} (expected e.g. 300, 90s, 5m)")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[(unit or "").lower()]


def parse_size(text: str) -> int:
    """Parse a byte size. Units are binary: ``1K`` is 1024 bytes.

    Examples:
        >>> parse_size("1048576")
        1048576
        >>> parse_size("10GiB")
        10737418240
        >>> parse_size("1.5k")
        1536

    Raises:
        ValueError: If the text is not a number with an optional unit.
    """
    match = _SIZE_PATTERN.match(text)
    if match is None:
        raise ValueError(f"invalid size {text!r} (expected e.g. 500M, 10GiB)")
    number, unit = match.groups()
    return int(float(number) * (1 << _SIZE_SHIFTS[unit.lower()]))


def parse_count(text: str) -> int:
    """Parse a non-negative integer such as a thread count."""
    value = int(text.strip())
    if value < 0:
        raise ValueError(f"expected a non-negative integer, got {value}")
    return value


def parse_flag(text: str) -> bool:
    """Parse yes/no style booleans; anything unrecognised is an error."""
    lowered = text.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ValueError(f"expected one of true/false/yes/no/on/off/1/0, got {text!r}")


class EnvReader:
    """Reads MEDIAOPT_* settings from an environment mapping.

    Unset or empty variables read as None. A value that does not parse is
    logged as a warning and also reads as None, leaving the setting to the
    config file or the built-in default.

    Example:
        reader = EnvReader(env={"MEDIAOPT_STALL_TIMEOUT": "10m"})
        reader.get_seconds("MEDIAOPT_STALL_TIMEOUT")  # 600.0
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def _read(self, var: str, convert: Callable[[str], T], kind: str) -> T | None:
        value = self._env.get(var)
        if value is None or not value.strip():
            return None
        try:
            return convert(value)
        except ValueError as e:
            logger.warning("Ignoring %s=%r: not a valid %s (%s)", var, value, kind, e)
            return None

    def get_str(self, var: str) -> str | None:
        return self._read(var, str.strip, "string")

    def get_seconds(self, var: str) -> float | None:
        """Duration in seconds, e.g. ``MEDIAOPT_GRACE_PERIOD=5s``."""
        return self._read(var, parse_duration, "duration")

    def get_size(self, var: str) -> int | None:
        """Size in bytes, e.g. ``MEDIAOPT_LARGE_FILE_THRESHOLD=4GiB``."""
        return self._read(var, parse_size, "size")

    def get_count(self, var: str) -> int | None:
        return self._read(var, parse_count, "count")

    def get_flag(self, var: str) -> bool | None:
        return self._read(var, parse_flag, "boolean")

    def get_path(self, var: str, must_exist: bool = True) -> Path | None:
        """Path with ``~`` expanded.

        With ``must_exist`` a path that does not exist is warned about and
        ignored; tool and policy paths use this, the temp dir and log file
        do not.
        """
        path = self._read(var, lambda v: Path(v.strip()).expanduser(), "path")
        if path is not None and must_exist and not path.exists():
            logger.warning("Ignoring %s: %s does not exist", var, path)
            return None
        return path
