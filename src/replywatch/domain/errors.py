"""Error taxonomy shared by the engine and its collaborators."""


class ReplyWatchError(Exception):
    """Base exception for replywatch runtime errors."""


class TransportError(ReplyWatchError):
    """Raised when a page, member or reactor fetch fails.

    Recovered locally: the affected channel or message is skipped.
    """


class MemberNotFoundError(TransportError):
    """Raised when a member cannot be resolved (e.g. they left the guild)."""


class DispatchError(ReplyWatchError):
    """Raised when an alert batch cannot be delivered to the sink."""


class AuthenticationError(ReplyWatchError):
    """Raised when the transport rejects the bot's credentials. Run-fatal."""


class PersistenceError(ReplyWatchError):
    """Raised when alert state cannot be loaded or saved. Run-fatal."""
