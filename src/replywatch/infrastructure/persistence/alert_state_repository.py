"""SQLite implementation of AlertStateRepository."""

from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from replywatch.domain.entities.alert_record import AlertRecord
from replywatch.domain.errors import PersistenceError
from replywatch.infrastructure.persistence.database import Database


def _as_utc(value: datetime | None) -> datetime | None:
    """Normalize a datetime to aware UTC.

    SQLite returns offset-naive datetimes; everything is stored in UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _detached_copy(record: AlertRecord) -> AlertRecord:
    return AlertRecord(
        id=record.id,
        channel_id=record.channel_id,
        message_id=record.message_id,
        last_alert_at=_as_utc(record.last_alert_at),
        snoozed_until=_as_utc(record.snoozed_until),
        handled=record.handled,
        alerted=record.alerted,
    )


class SqliteAlertStateRepository:
    """SQLite implementation of AlertStateRepository.

    Uses SQLModel with async SQLite. ``save_state`` rewrites the table
    inside a single transaction.
    """

    def __init__(self, database: Database) -> None:
        """Initialize the repository.

        Args:
            database: Database instance for session management.
        """
        self._database = database

    async def load_state(self) -> dict[str, AlertRecord]:
        """Load every alert record, keyed by record ID.

        Returns:
            Mapping of `{channel_id}:{message_id}` to detached records.

        Raises:
            PersistenceError: If the database cannot be read.
        """
        try:
            async with self._database.get_session() as session:
                result = await session.execute(select(AlertRecord))
                rows = list(result.scalars().all())
                return {row.id: _detached_copy(row) for row in rows}
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to load alert state: {e}") from e

    async def save_state(self, records: dict[str, AlertRecord]) -> None:
        """Replace the stored state with ``records`` atomically.

        Args:
            records: Complete alert state keyed by record ID.

        Raises:
            PersistenceError: If the write fails. The previous state is kept.
        """
        try:
            async with self._database.get_session() as session:
                await session.execute(delete(AlertRecord))
                for key, record in records.items():
                    copy = _detached_copy(record)
                    copy.id = key
                    session.add(copy)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to save alert state: {e}") from e
