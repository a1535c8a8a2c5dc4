"""Authoritative alert lifecycle state for a run."""

from collections.abc import Iterable
from datetime import datetime

from structlog.stdlib import BoundLogger

from replywatch.domain.entities.alert_record import AlertRecord
from replywatch.domain.repositories.alert_state_repository import (
    AlertStateRepository,
)


class AlertStateStore:
    """In-memory alert records, loaded once and flushed once per run.

    All mutations go to the in-memory map. ``flush`` writes the whole map
    through the repository; it is a no-op when nothing changed since the
    last load or flush. Only one run may use a store at a time.
    """

    def __init__(self, repository: AlertStateRepository, logger: BoundLogger) -> None:
        """Initialize the store.

        Args:
            repository: Persistence backend.
            logger: Logger instance.
        """
        self._repository = repository
        self._logger = logger
        self._records: dict[str, AlertRecord] = {}
        self._dirty = False

    @property
    def dirty(self) -> bool:
        """Return True if there are unflushed mutations."""
        return self._dirty

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    async def load(self) -> None:
        """Replace the in-memory state with the persisted one.

        Raises:
            PersistenceError: If the state cannot be read.
        """
        self._records = await self._repository.load_state()
        self._dirty = False
        self._logger.debug("Alert state loaded", records=len(self._records))

    async def flush(self) -> None:
        """Persist the in-memory state if it changed.

        Raises:
            PersistenceError: If the state cannot be written. The store stays
                dirty so a later flush may retry.
        """
        if not self._dirty:
            return
        await self._repository.save_state(dict(self._records))
        self._dirty = False
        self._logger.debug("Alert state flushed", records=len(self._records))

    def get(self, key: str) -> AlertRecord | None:
        return self._records.get(key)

    def _get_or_create(self, key: str) -> AlertRecord:
        record = self._records.get(key)
        if record is None:
            channel_id, _, message_id = key.partition(":")
            record = AlertRecord(id=key, channel_id=channel_id, message_id=message_id)
            self._records[key] = record
        return record

    def record_alert(self, key: str, now: datetime) -> None:
        """Record that an alert for ``key`` was sent at ``now``."""
        record = self._get_or_create(key)
        record.last_alert_at = now
        record.alerted = True
        record.handled = False
        self._dirty = True

    def clear(self, key: str) -> bool:
        """Forget an answered message. Returns True if a record existed."""
        if self._records.pop(key, None) is None:
            return False
        self._dirty = True
        return True

    def snooze(self, key: str, until: datetime) -> None:
        """Silence alerts for ``key`` until ``until``."""
        record = self._get_or_create(key)
        record.snoozed_until = until
        self._dirty = True

    def mark_handled(self, key: str) -> None:
        """Silence alerts for ``key`` until it is answered or alerted again."""
        record = self._get_or_create(key)
        record.handled = True
        self._dirty = True

    def retain(self, channel_id: str, keys: Iterable[str]) -> list[str]:
        """Drop records of ``channel_id`` whose key is not in ``keys``.

        Used to forget messages that have left the lookback window.

        Returns:
            The keys that were dropped.
        """
        keep = set(keys)
        dropped = [
            key
            for key, record in self._records.items()
            if record.channel_id == channel_id and key not in keep
        ]
        for key in dropped:
            del self._records[key]
        if dropped:
            self._dirty = True
        return dropped

    def retain_channels(self, channel_ids: Iterable[str]) -> list[str]:
        """Drop records of every channel not in ``channel_ids``.

        Used to forget channels that were deleted or are no longer listed.

        Returns:
            The keys that were dropped.
        """
        keep = set(channel_ids)
        dropped = [
            key
            for key, record in self._records.items()
            if record.channel_id not in keep
        ]
        for key in dropped:
            del self._records[key]
        if dropped:
            self._dirty = True
        return dropped
