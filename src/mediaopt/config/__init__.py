"""Configuration module for mediaopt.

Configuration precedence: CLI > env (MEDIAOPT_*) > config file > defaults.
"""

from mediaopt.config.builder import ConfigBuilder, ConfigSource
from mediaopt.config.env import EnvReader
from mediaopt.config.loader import (
    clear_config_cache,
    get_config,
    get_data_dir,
    get_default_config_path,
    get_temp_directory,
    load_config_file,
)
from mediaopt.config.logging_factory import build_logging_config
from mediaopt.config.models import (
    JobsConfig,
    LoggingConfig,
    MediaoptConfig,
    ToolPathsConfig,
)
from mediaopt.config.toml_parser import TomlParseError

__all__ = [
    "ConfigBuilder",
    "ConfigSource",
    "EnvReader",
    "JobsConfig",
    "LoggingConfig",
    "MediaoptConfig",
    "TomlParseError",
    "ToolPathsConfig",
    "build_logging_config",
    "clear_config_cache",
    "get_config",
    "get_data_dir",
    "get_default_config_path",
    "get_temp_directory",
    "load_config_file",
]
