"""Pydantic models for application configuration."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from replywatch.domain.entities.policy import Policy


class DiscordConfig(BaseModel):
    """Discord integration configuration."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    token: str = Field(
        ...,
        description="Bot token used for REST API calls.",
    )
    guild_id: str = Field(
        ...,
        description="ID of the guild whose text channels are monitored.",
    )
    alert_channel_id: str = Field(
        ...,
        description=(
            "Channel that receives breach alerts. It is never scanned itself."
        ),
    )
    api_base_url: str = Field(
        default="https://discord.com/api/v10",
        description="Base URL of the Discord REST API.",
    )
    request_timeout: float = Field(
        default=15.0,
        description="Total timeout in seconds for a single REST call.",
    )
    mention_role_id: str | None = Field(
        default=None,
        description=(
            "Role mentioned in alert batches. Defaults to the internal role "
            "when exactly one is configured."
        ),
    )
    external_role_suffix: str | None = Field(
        default=None,
        description=(
            "Guild roles whose name ends with this suffix (e.g. '-ext') are "
            "added to the policy's external roles at startup."
        ),
    )


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/replywatch.db",
        description=(
            "SQLAlchemy-style database connection URL "
            "(e.g., 'sqlite+aiosqlite:///path/to/db')."
        ),
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"


class AppConfig(BaseModel):
    """Application configuration."""

    discord: DiscordConfig
    policy: Policy = Field(default_factory=Policy)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
