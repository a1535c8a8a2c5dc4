"""AlertStateRepository protocol."""

from typing import Protocol

from replywatch.domain.entities.alert_record import AlertRecord


class AlertStateRepository(Protocol):
    """Repository protocol for persisted alert state.

    The whole state is read at the start of a run and written back at the
    end, so the interface deals in complete snapshots.
    """

    async def load_state(self) -> dict[str, AlertRecord]:
        """Load every alert record, keyed by `{channel_id}:{message_id}`.

        Raises:
            PersistenceError: If the state cannot be read.
        """
        ...

    async def save_state(self, records: dict[str, AlertRecord]) -> None:
        """Replace the persisted state with ``records``.

        The write is atomic: a later run observes either the previous
        snapshot or this one, never a mix.

        Raises:
            PersistenceError: If the state cannot be written.
        """
        ...
