"""Chronological view of recent channel history."""

from collections.abc import Iterator
from datetime import datetime, timedelta

from structlog.stdlib import BoundLogger

from replywatch.application.services.member_directory import MemberDirectory
from replywatch.domain.entities.message import Message, RawMessage, alert_key
from replywatch.domain.errors import TransportError
from replywatch.domain.gateways.chat_gateway import ChatGateway


class ConversationWindow:
    """Messages of one channel posted within the lookback period.

    Messages are ordered oldest first. Bot and system messages, and messages
    whose author could not be resolved, are not part of the window. Messages
    left out because the role lookup failed are kept in ``unresolved``; any
    of them may be a staff reply.
    """

    def __init__(
        self,
        channel_id: str,
        messages: tuple[Message, ...],
        observed_keys: frozenset[str] = frozenset(),
        unresolved: tuple[RawMessage, ...] = (),
    ) -> None:
        self.channel_id = channel_id
        self.messages = messages
        self.unresolved = unresolved
        # Keys of every message seen in the lookback, including excluded ones
        self.observed_keys = observed_keys | {m.key for m in messages}

    def __iter__(self) -> Iterator[Message]:
        return iter(self.messages)

    def __len__(self) -> int:
        return len(self.messages)

    def after(self, message: Message) -> list[Message]:
        """Return the messages posted strictly later than ``message``."""
        return [m for m in self.messages if m.created_at > message.created_at]

    def unresolved_after(self, message: Message) -> list[RawMessage]:
        """Return unclassified messages posted strictly later than ``message``."""
        return [m for m in self.unresolved if m.created_at > message.created_at]

    @classmethod
    async def build(
        cls,
        channel_id: str,
        lookback: timedelta,
        now: datetime,
        gateway: ChatGateway,
        members: MemberDirectory,
        logger: BoundLogger,
        page_size: int = 50,
    ) -> "ConversationWindow":
        """Page channel history backward from ``now`` and build the window.

        Paging stops when a page is shorter than ``page_size`` or its
        oldest message predates ``now - lookback``.

        Args:
            channel_id: The channel to read.
            lookback: How far back to read.
            now: Evaluation time.
            gateway: Transport to page history from.
            members: Role lookup shared across the run.
            logger: Logger instance.
            page_size: Messages requested per page.

        Returns:
            The window, oldest message first.

        Raises:
            TransportError: If a history page cannot be fetched.
        """
        cutoff = now - lookback
        collected: list[RawMessage] = []
        before: str | None = None

        while True:
            page = await gateway.fetch_channel_page(channel_id, before, page_size)
            if not page:
                break
            collected.extend(m for m in page if m.created_at >= cutoff)
            oldest = min(page, key=lambda m: m.created_at)
            if len(page) < page_size or oldest.created_at < cutoff:
                break
            before = oldest.message_id

        # Pages are newest first; reversing keeps platform order among equal times
        collected.reverse()
        collected.sort(key=lambda m: m.created_at)

        messages: list[Message] = []
        unresolved: list[RawMessage] = []
        for raw in collected:
            if raw.is_bot:
                continue
            try:
                roles = await members.roles_of(raw.author_id)
            except TransportError as e:
                logger.warning(
                    "Failed to resolve author roles, skipping message",
                    channel_id=channel_id,
                    message_id=raw.message_id,
                    author_id=raw.author_id,
                    error=str(e),
                )
                unresolved.append(raw)
                continue
            if roles is None:
                logger.info(
                    "Author is no longer a member, skipping message",
                    channel_id=channel_id,
                    message_id=raw.message_id,
                    author_id=raw.author_id,
                )
                continue
            messages.append(Message.from_raw(raw, roles))

        logger.debug(
            "Built conversation window",
            channel_id=channel_id,
            fetched=len(collected),
            messages=len(messages),
        )
        observed = frozenset(
            alert_key(channel_id, raw.message_id) for raw in collected
        )
        return cls(channel_id, tuple(messages), observed, tuple(unresolved))
