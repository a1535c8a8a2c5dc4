"""Per-run cache of member role lookups."""

from replywatch.domain.errors import MemberNotFoundError
from replywatch.domain.gateways.chat_gateway import ChatGateway


class MemberDirectory:
    """Resolves member roles through the gateway, once per user per run.

    Members that could not be found are remembered as ``None`` so they are
    not looked up again during the same run.
    """

    def __init__(self, gateway: ChatGateway) -> None:
        self._gateway = gateway
        self._roles: dict[str, frozenset[str] | None] = {}

    async def roles_of(self, user_id: str) -> frozenset[str] | None:
        """Return the user's role IDs, or None if they are not a member.

        Raises:
            TransportError: If the lookup fails for another reason. Failures
                are not cached so a later message may retry the lookup.
        """
        if user_id in self._roles:
            return self._roles[user_id]
        try:
            roles = await self._gateway.resolve_member_roles(user_id)
        except MemberNotFoundError:
            roles = None
        self._roles[user_id] = roles
        return roles
