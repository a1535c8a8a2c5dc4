"""Chat message entities observed during a monitoring run."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

EXCERPT_LENGTH = 120

# Zero-width space placed after "@" so user text cannot form a mention
MENTION_BREAK = "\u200b"


def alert_key(channel_id: str, message_id: str) -> str:
    """Return the alert record key for a message."""
    return f"{channel_id}:{message_id}"


def escape_mentions(text: str) -> str:
    """Break role, user and @everyone mentions in ``text``."""
    return text.replace("@", "@" + MENTION_BREAK)


def make_excerpt(content: str, length: int = EXCERPT_LENGTH) -> str:
    """Collapse whitespace, truncate to ``length`` and escape mentions."""
    flat = " ".join(content.split())
    if len(flat) > length:
        flat = flat[: length - 1].rstrip() + "…"
    return escape_mentions(flat)


class Participant(BaseModel):
    """A user seen through the transport (e.g. a reactor)."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    is_bot: bool = False


class RawMessage(BaseModel):
    """A message as paged from the transport, before role resolution.

    Attributes:
        channel_id: Channel the message was posted in.
        message_id: Platform message ID.
        author_id: Author's user ID.
        author_name: Author's display name.
        is_bot: Whether the author is a bot or system account.
        content: Full message content.
        created_at: Message creation time (timezone-aware).
        url: Deep link to the message.
        reactions: Distinct emoji identifiers present on the message.
    """

    model_config = ConfigDict(frozen=True)

    channel_id: str
    message_id: str
    author_id: str
    author_name: str
    is_bot: bool = False
    content: str = ""
    created_at: datetime
    url: str = ""
    reactions: tuple[str, ...] = ()


class Message(BaseModel):
    """A monitored message with its author's roles resolved."""

    model_config = ConfigDict(frozen=True)

    channel_id: str
    message_id: str
    author_id: str
    author_name: str
    author_roles: frozenset[str]
    created_at: datetime
    excerpt: str = ""
    url: str = ""
    is_bot: bool = False
    reactions: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        """Return the alert record key for this message."""
        return alert_key(self.channel_id, self.message_id)

    @classmethod
    def from_raw(cls, raw: RawMessage, roles: frozenset[str]) -> "Message":
        """Build a Message from a transport page entry and resolved roles."""
        return cls(
            channel_id=raw.channel_id,
            message_id=raw.message_id,
            author_id=raw.author_id,
            author_name=escape_mentions(raw.author_name),
            author_roles=roles,
            created_at=raw.created_at,
            excerpt=make_excerpt(raw.content),
            url=raw.url,
            is_bot=raw.is_bot,
            reactions=raw.reactions,
        )
