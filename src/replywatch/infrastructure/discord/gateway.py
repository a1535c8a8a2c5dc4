"""Discord REST implementation of ChatGateway."""

from datetime import datetime
from types import TracebackType
from typing import Any
from urllib.parse import quote

import aiohttp
import structlog

from replywatch.config.models import DiscordConfig
from replywatch.domain.entities.message import Participant, RawMessage
from replywatch.domain.errors import (
    AuthenticationError,
    DispatchError,
    MemberNotFoundError,
    TransportError,
)

# Channel types that carry a plain message history
TEXT_CHANNEL_TYPES = frozenset({0, 5})

# Message types authored by people (DEFAULT, REPLY); everything else is system
USER_MESSAGE_TYPES = frozenset({0, 19})

REACTORS_PAGE_SIZE = 100


class _ResourceNotFound(TransportError):
    """HTTP 404 from the Discord API."""


class DiscordGateway:
    """ChatGateway backed by the Discord REST API.

    Use as an async context manager so the underlying HTTP session is
    opened and closed around a run:

        >>> async with DiscordGateway(config, logger) as gateway:
        ...     channels = await gateway.list_text_channels()

    Args:
        config: Discord configuration (token, guild, API base URL).
        logger: Structured logger for logging.
    """

    def __init__(
        self,
        config: DiscordConfig,
        logger: structlog.stdlib.BoundLogger,
    ) -> None:
        self.config = config
        self._logger = logger
        self._base_url = config.api_base_url.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "DiscordGateway":
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def open(self) -> None:
        """Open the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                headers={
                    "Authorization": f"Bot {self.config.token}",
                    "User-Agent": "DiscordBot (replywatch, 0.1)",
                },
                timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            )

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session is not None:
            await self._session.close()
            self._session = None

    def message_url(self, channel_id: str, message_id: str) -> str:
        """Return the jump link of a message."""
        return (
            f"https://discord.com/channels/{self.config.guild_id}/"
            f"{channel_id}/{message_id}"
        )

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Perform one REST call and decode its JSON body.

        Raises:
            AuthenticationError: On HTTP 401.
            TransportError: On any other failure.
        """
        if self._session is None:
            raise RuntimeError("Gateway is not open. Call open() first.")

        try:
            async with self._session.request(
                method, f"{self._base_url}{path}", params=params, json=json
            ) as response:
                if response.status == 401:
                    raise AuthenticationError("Discord rejected the bot token")
                if response.status == 404:
                    raise _ResourceNotFound(f"{method} {path} returned HTTP 404")
                if response.status >= 400:
                    body = await response.text()
                    raise TransportError(
                        f"{method} {path} failed with HTTP {response.status}: "
                        f"{body[:200]}"
                    )
                if response.status == 204:
                    return None
                return await response.json()
        except (aiohttp.ClientError, TimeoutError) as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

    async def list_text_channels(self) -> list[str]:
        """Return the IDs of the guild's text and announcement channels."""
        channels = await self._request(
            "GET", f"/guilds/{self.config.guild_id}/channels"
        )
        return [
            str(channel["id"])
            for channel in channels
            if channel.get("type") in TEXT_CHANNEL_TYPES
        ]

    async def fetch_channel_page(
        self, channel_id: str, before: str | None, limit: int
    ) -> list[RawMessage]:
        """Fetch one page of channel history, newest first."""
        params: dict[str, Any] = {"limit": limit}
        if before is not None:
            params["before"] = before
        payload = await self._request(
            "GET", f"/channels/{channel_id}/messages", params=params
        )
        return [self._parse_message(channel_id, item) for item in payload]

    def _parse_message(self, channel_id: str, item: dict[str, Any]) -> RawMessage:
        author = item.get("author") or {}
        is_bot = (
            bool(author.get("bot"))
            or bool(author.get("system"))
            or "webhook_id" in item
            or item.get("type", 0) not in USER_MESSAGE_TYPES
        )
        reactions = []
        for reaction in item.get("reactions") or []:
            emoji = reaction.get("emoji") or {}
            if emoji.get("id"):
                reactions.append(f"{emoji.get('name')}:{emoji['id']}")
            elif emoji.get("name"):
                reactions.append(emoji["name"])
        return RawMessage(
            channel_id=channel_id,
            message_id=str(item["id"]),
            author_id=str(author.get("id", "")),
            author_name=(
                author.get("global_name") or author.get("username") or "unknown"
            ),
            is_bot=is_bot,
            content=item.get("content") or "",
            created_at=datetime.fromisoformat(item["timestamp"]),
            url=self.message_url(channel_id, str(item["id"])),
            reactions=tuple(dict.fromkeys(reactions)),
        )

    async def resolve_member_roles(self, user_id: str) -> frozenset[str]:
        """Return the role IDs of a guild member.

        Raises:
            MemberNotFoundError: If the user is not (or no longer) a member.
        """
        try:
            member = await self._request(
                "GET", f"/guilds/{self.config.guild_id}/members/{user_id}"
            )
        except _ResourceNotFound as e:
            raise MemberNotFoundError(f"Member {user_id} not found") from e
        return frozenset(str(role) for role in member.get("roles", []))

    async def fetch_reactors(
        self, channel_id: str, message_id: str, emoji: str
    ) -> list[Participant]:
        """Return every user who reacted to a message with ``emoji``."""
        path = (
            f"/channels/{channel_id}/messages/{message_id}"
            f"/reactions/{quote(emoji, safe=':')}"
        )
        reactors: list[Participant] = []
        after: str | None = None
        while True:
            params: dict[str, Any] = {"limit": REACTORS_PAGE_SIZE}
            if after is not None:
                params["after"] = after
            users = await self._request("GET", path, params=params)
            reactors.extend(
                Participant(user_id=str(user["id"]), is_bot=bool(user.get("bot")))
                for user in users
            )
            if len(users) < REACTORS_PAGE_SIZE:
                return reactors
            after = str(users[-1]["id"])

    async def send_message(self, channel_id: str, text: str) -> None:
        """Post ``text`` to a channel, allowing role mentions only.

        Raises:
            DispatchError: If the message could not be delivered.
        """
        try:
            await self._request(
                "POST",
                f"/channels/{channel_id}/messages",
                json={"content": text, "allowed_mentions": {"parse": ["roles"]}},
            )
        except TransportError as e:
            raise DispatchError(f"Failed to send to channel {channel_id}: {e}") from e

    async def discover_roles(self, suffix: str) -> frozenset[str]:
        """Return the IDs of guild roles whose name ends with ``suffix``."""
        roles = await self._request("GET", f"/guilds/{self.config.guild_id}/roles")
        matched = frozenset(
            str(role["id"]) for role in roles if role.get("name", "").endswith(suffix)
        )
        self._logger.debug("Discovered roles", suffix=suffix, count=len(matched))
        return matched
