"""Discord transport."""

from replywatch.infrastructure.discord.gateway import DiscordGateway

__all__ = ["DiscordGateway"]
