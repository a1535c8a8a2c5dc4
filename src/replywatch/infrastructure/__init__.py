"""Infrastructure layer."""

from replywatch.infrastructure.discord import DiscordGateway
from replywatch.infrastructure.persistence import Database, SqliteAlertStateRepository

__all__ = ["Database", "DiscordGateway", "SqliteAlertStateRepository"]
