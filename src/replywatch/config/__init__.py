"""Configuration module for replywatch."""

from replywatch.config.loader import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigParseError,
    EnvVarNotFoundError,
    load_config,
)
from replywatch.config.models import (
    AppConfig,
    DatabaseConfig,
    DiscordConfig,
    LoggingConfig,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "EnvVarNotFoundError",
    # Functions
    "load_config",
    # Models
    "AppConfig",
    "DatabaseConfig",
    "DiscordConfig",
    "LoggingConfig",
]
