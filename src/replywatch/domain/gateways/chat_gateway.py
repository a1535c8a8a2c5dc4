"""ChatGateway protocol."""

from typing import Protocol

from replywatch.domain.entities.message import Participant, RawMessage


class ChatGateway(Protocol):
    """Transport and directory boundary of the chat platform.

    Implementations raise ``TransportError`` (or ``MemberNotFoundError``) for
    recoverable failures, ``DispatchError`` when a send fails and
    ``AuthenticationError`` when credentials are rejected.
    """

    async def list_text_channels(self) -> list[str]:
        """Return the IDs of all text channels to monitor."""
        ...

    async def fetch_channel_page(
        self, channel_id: str, before: str | None, limit: int
    ) -> list[RawMessage]:
        """Fetch one page of channel history.

        Returns messages newest first, all strictly older than ``before``
        when it is given.

        Args:
            channel_id: The channel ID.
            before: Message ID to page backward from, or None for the latest.
            limit: Maximum number of messages to return.

        Returns:
            List of messages.
        """
        ...

    async def resolve_member_roles(self, user_id: str) -> frozenset[str]:
        """Return the role IDs held by a guild member.

        Raises:
            MemberNotFoundError: If the user is not a member of the guild.
        """
        ...

    async def fetch_reactors(
        self, channel_id: str, message_id: str, emoji: str
    ) -> list[Participant]:
        """Return the users who reacted to a message with ``emoji``."""
        ...

    async def send_message(self, channel_id: str, text: str) -> None:
        """Post ``text`` to a channel.

        Raises:
            DispatchError: If the message could not be delivered.
        """
        ...

    async def discover_roles(self, suffix: str) -> frozenset[str]:
        """Return the IDs of guild roles whose name ends with ``suffix``."""
        ...
