"""Qualifying-response resolution for external messages."""

from structlog.stdlib import BoundLogger

from replywatch.application.services.conversation_window import ConversationWindow
from replywatch.application.services.member_directory import MemberDirectory
from replywatch.application.services.role_classifier import RoleClassifier
from replywatch.domain.entities.message import Message
from replywatch.domain.errors import TransportError
from replywatch.domain.gateways.chat_gateway import ChatGateway


class ResponseResolver:
    """Decides whether an external message has been answered by staff.

    A message is answered when an internal participant either posted a
    strictly later message in the same channel, or reacted to it. The reply
    check needs no I/O and runs first; reactors are fetched one emoji at a
    time and the search stops at the first internal reactor.
    """

    def __init__(
        self,
        gateway: ChatGateway,
        classifier: RoleClassifier,
        members: MemberDirectory,
        logger: BoundLogger,
        check_reactions: bool = True,
    ) -> None:
        """Initialize the resolver.

        Args:
            gateway: Transport used to fetch reactors.
            classifier: Role classifier.
            members: Role lookup shared with the window builder.
            logger: Logger instance.
            check_reactions: Whether staff reactions count as responses.
        """
        self._gateway = gateway
        self._classifier = classifier
        self._members = members
        self._logger = logger
        self._check_reactions = check_reactions

    def has_reply_after(self, message: Message, window: ConversationWindow) -> bool:
        """Return True if an internal participant posted after ``message``."""
        return any(
            not reply.is_bot
            and reply.channel_id == message.channel_id
            and self._classifier.is_internal(reply.author_roles)
            for reply in window.after(message)
        )

    async def has_internal_reaction(self, message: Message) -> bool:
        """Return True if an internal participant reacted to ``message``.

        Raises:
            TransportError: If reactors or their roles cannot be fetched.
        """
        for emoji in message.reactions:
            reactors = await self._gateway.fetch_reactors(
                message.channel_id, message.message_id, emoji
            )
            for reactor in reactors:
                if reactor.is_bot:
                    continue
                roles = await self._members.roles_of(reactor.user_id)
                if roles is not None and self._classifier.is_internal(roles):
                    self._logger.debug(
                        "Message answered by reaction",
                        channel_id=message.channel_id,
                        message_id=message.message_id,
                        emoji=emoji,
                    )
                    return True
        return False

    async def is_answered(self, message: Message, window: ConversationWindow) -> bool:
        """Return True if ``message`` has a qualifying internal response.

        Raises:
            TransportError: If reactors cannot be fetched, or if a later
                message whose author could not be classified may be the
                reply. The caller should leave the message untouched for
                this run.
        """
        if self.has_reply_after(message, window):
            return True
        if self._check_reactions and await self.has_internal_reaction(message):
            return True

        pending = window.unresolved_after(message)
        if pending:
            raise TransportError(
                f"{len(pending)} later message(s) in channel "
                f"{message.channel_id} have unresolved authors"
            )
        return False
