"""Configuration loader with precedence handling.

Configuration is loaded with the following precedence (highest to lowest):
1. CLI arguments (passed directly to functions)
2. Environment variables (MEDIAOPT_*)
3. Config file (~/.mediaopt/config.toml)
4. Default values

Environment variables:
- MEDIAOPT_CONFIG_PATH: Path to config file (overrides default location)
- MEDIAOPT_DATA_DIR: Path to data directory (overrides ~/.mediaopt/)
- MEDIAOPT_FFMPEG_PATH: Path to ffmpeg executable
- MEDIAOPT_FFPROBE_PATH: Path to ffprobe executable
- MEDIAOPT_POLICY_PATH: Default encoding policy file
- MEDIAOPT_TEMP_DIR: Directory for temp output and progress files
- MEDIAOPT_THREADS: Encoder thread count (0 = auto)
- MEDIAOPT_STALL_TIMEOUT: Time without progress before cancelling ("5m")
- MEDIAOPT_GRACE_PERIOD: Time between SIGTERM and SIGKILL ("5s")
- MEDIAOPT_DRAIN_PERIOD: Time to keep reading progress after engine exit
- MEDIAOPT_MAX_RUNTIME: Hard runtime limit (0 = unlimited)
- MEDIAOPT_PROBE_TIMEOUT: Timeout for each ffprobe call
- MEDIAOPT_LARGE_FILE_THRESHOLD: Size below which threads are halved ("10GiB")
- MEDIAOPT_HALVE_THREADS: Enable/disable thread halving (true/false)
- MEDIAOPT_LOG_LEVEL / MEDIAOPT_LOG_FILE / MEDIAOPT_LOG_FORMAT: Logging
- MEDIAOPT_LOG_ENGINE_LEVEL: Threshold for ffmpeg diagnostic lines
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path

from mediaopt.config.builder import (
    ConfigBuilder,
    ConfigSource,
    source_from_env,
    source_from_file,
)
from mediaopt.config.env import EnvReader
from mediaopt.config.models import MediaoptConfig
from mediaopt.config.toml_parser import load_toml_file

logger = logging.getLogger(__name__)

# Default config location
DEFAULT_CONFIG_DIR = Path.home() / ".mediaopt"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.toml"

# Subdirectory of the system temp dir used when nothing is configured
DEFAULT_TEMP_SUBDIR = "mediaopt"

# Cache for loaded config files (path -> (parsed dict, mtime))
_config_cache: dict[Path, tuple[dict, float]] = {}
_config_cache_lock = threading.Lock()


def get_data_dir() -> Path:
    """Get the mediaopt data directory.

    Can be overridden by MEDIAOPT_DATA_DIR environment variable.

    Returns:
        Path to the data directory (~/.mediaopt/ by default).
    """
    env_path = os.environ.get("MEDIAOPT_DATA_DIR")
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_CONFIG_DIR


def get_default_config_path() -> Path:
    """Get the default config file path.

    Can be overridden by MEDIAOPT_CONFIG_PATH environment variable.
    """
    env_path = os.environ.get("MEDIAOPT_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return get_data_dir() / "config.toml"


def load_config_file(path: Path | None = None, *, strict: bool = False) -> dict:
    """Load configuration from TOML file.

    Results are cached with mtime-based invalidation. Use
    clear_config_cache() to force a reload regardless of mtime.

    Args:
        path: Path to config file. If None, uses default location.
        strict: If True, raise TomlParseError on parse failures.

    Returns:
        Parsed configuration dict. Empty dict if file doesn't exist.
    """
    if path is None:
        path = get_default_config_path()

    try:
        current_mtime = path.stat().st_mtime
    except FileNotFoundError:
        current_mtime = 0.0

    with _config_cache_lock:
        cached = _config_cache.get(path)
        if cached is not None and cached[1] == current_mtime:
            return cached[0]

        result = load_toml_file(path, strict=strict)
        _config_cache[path] = (result, current_mtime)
        return result


def clear_config_cache() -> None:
    """Clear the config file cache.

    Primarily useful for testing.
    """
    with _config_cache_lock:
        _config_cache.clear()


def get_config(
    config_path: Path | None = None,
    # CLI overrides (highest precedence)
    ffmpeg_path: Path | None = None,
    ffprobe_path: Path | None = None,
    temp_directory: Path | None = None,
    threads: int | None = None,
    stall_timeout: float | None = None,
    # Optional dependency injection for testing
    env_reader: EnvReader | None = None,
    *,
    strict: bool = False,
) -> MediaoptConfig:
    """Get mediaopt configuration with full precedence handling.

    Precedence (highest to lowest):
    1. CLI arguments passed to this function
    2. Environment variables (MEDIAOPT_*)
    3. Config file
    4. Default values

    Args:
        config_path: Path to config file (overrides MEDIAOPT_CONFIG_PATH).
        ffmpeg_path: CLI override for ffmpeg path.
        ffprobe_path: CLI override for ffprobe path.
        temp_directory: CLI override for the temp directory.
        threads: CLI override for the encoder thread count.
        stall_timeout: CLI override for the stall timeout.
        env_reader: Optional EnvReader for testing (uses os.environ if None).
        strict: If True, raise TomlParseError on config file parse failures.

    Returns:
        MediaoptConfig with merged configuration.

    Raises:
        TomlParseError: When strict=True and the config file cannot be parsed.
        ValueError: If a merged value fails validation.
    """
    reader = env_reader or EnvReader()

    file_config = load_config_file(config_path, strict=strict)

    cli_source = ConfigSource(
        ffmpeg_path=ffmpeg_path,
        ffprobe_path=ffprobe_path,
        jobs_temp_directory=temp_directory,
        jobs_threads=threads,
        jobs_stall_timeout=stall_timeout,
    )

    # Build with precedence: file < env < cli
    builder = ConfigBuilder()
    builder.apply(source_from_file(file_config))
    builder.apply(source_from_env(reader))
    builder.apply(cli_source)
    return builder.build()


def get_temp_directory(config: MediaoptConfig | None = None) -> Path:
    """Get the directory for temp output and progress files.

    Precedence (highest to lowest):
    1. Config [jobs] temp_directory (after env/CLI layering)
    2. <system temp dir>/mediaopt

    The directory is created if missing.

    Args:
        config: Configuration to read from. Loaded with get_config() if None.

    Returns:
        Path to an existing temp directory.
    """
    if config is None:
        config = get_config()

    if config.jobs.temp_directory is not None:
        path = config.jobs.temp_directory.expanduser()
    else:
        path = Path(tempfile.gettempdir()) / DEFAULT_TEMP_SUBDIR

    path.mkdir(parents=True, exist_ok=True)
    return path
