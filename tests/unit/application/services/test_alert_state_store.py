"""Tests for AlertStateStore."""

from datetime import datetime, timedelta, timezone

import pytest
import structlog
from fakes import InMemoryAlertStateRepository

from replywatch.application.services.alert_state_store import AlertStateStore
from replywatch.domain.entities.alert_record import AlertRecord
from replywatch.domain.errors import PersistenceError

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository() -> InMemoryAlertStateRepository:
    return InMemoryAlertStateRepository(
        {
            "C1:M1": AlertRecord(
                id="C1:M1",
                channel_id="C1",
                message_id="M1",
                last_alert_at=NOW - timedelta(hours=1),
                alerted=True,
            )
        }
    )


@pytest.fixture
async def store(repository: InMemoryAlertStateRepository) -> AlertStateStore:
    store = AlertStateStore(repository, structlog.stdlib.get_logger("test"))
    await store.load()
    return store


class TestMutations:
    """In-memory mutations."""

    async def test_load(self, store: AlertStateStore) -> None:
        record = store.get("C1:M1")

        assert record is not None
        assert record.alerted is True
        assert len(store) == 1
        assert not store.dirty

    async def test_record_alert_creates_record(self, store: AlertStateStore) -> None:
        store.record_alert("C2:M9", NOW)

        record = store.get("C2:M9")
        assert record is not None
        assert record.channel_id == "C2"
        assert record.message_id == "M9"
        assert record.last_alert_at == NOW
        assert record.alerted is True
        assert store.dirty

    async def test_record_alert_clears_handled(self, store: AlertStateStore) -> None:
        store.mark_handled("C1:M1")

        store.record_alert("C1:M1", NOW)

        record = store.get("C1:M1")
        assert record is not None
        assert record.handled is False

    async def test_clear(self, store: AlertStateStore) -> None:
        assert store.clear("C1:M1") is True
        assert store.get("C1:M1") is None
        assert store.clear("C1:M1") is False

    async def test_snooze_and_handle_create_records(
        self, store: AlertStateStore
    ) -> None:
        store.snooze("C3:M1", NOW + timedelta(hours=1))
        store.mark_handled("C3:M2")

        snoozed = store.get("C3:M1")
        handled = store.get("C3:M2")
        assert snoozed is not None and snoozed.snoozed_until == NOW + timedelta(hours=1)
        assert snoozed.alerted is False
        assert handled is not None and handled.handled is True

    async def test_retain_drops_unobserved_keys_of_channel(
        self, store: AlertStateStore
    ) -> None:
        store.record_alert("C1:M2", NOW)
        store.record_alert("C2:M3", NOW)

        dropped = store.retain("C1", {"C1:M2"})

        assert dropped == ["C1:M1"]
        assert "C1:M2" in store
        assert "C2:M3" in store

    async def test_retain_channels_drops_unlisted_channels(
        self, store: AlertStateStore
    ) -> None:
        store.record_alert("C2:M3", NOW)
        await store.flush()

        dropped = store.retain_channels(["C2"])

        assert dropped == ["C1:M1"]
        assert "C2:M3" in store
        assert store.dirty


class TestFlush:
    """Persistence through the repository."""

    async def test_flush_writes_once(
        self, store: AlertStateStore, repository: InMemoryAlertStateRepository
    ) -> None:
        store.record_alert("C2:M9", NOW)
        store.clear("C1:M1")

        await store.flush()
        await store.flush()

        assert repository.saves == 1
        assert set(repository.snapshot) == {"C2:M9"}
        assert not store.dirty

    async def test_flush_without_changes_is_noop(
        self, store: AlertStateStore, repository: InMemoryAlertStateRepository
    ) -> None:
        await store.flush()

        assert repository.saves == 0

    async def test_failed_flush_stays_dirty(
        self, store: AlertStateStore, repository: InMemoryAlertStateRepository
    ) -> None:
        repository.fail_on_save = True
        store.record_alert("C2:M9", NOW)

        with pytest.raises(PersistenceError):
            await store.flush()

        assert store.dirty
        assert "C2:M9" not in repository.snapshot

    async def test_mutations_not_visible_until_flush(
        self, store: AlertStateStore, repository: InMemoryAlertStateRepository
    ) -> None:
        store.clear("C1:M1")

        assert "C1:M1" in repository.snapshot
