"""Tests for AlertDispatcher."""

from datetime import datetime, timedelta, timezone

import pytest
import structlog
from fakes import FakeChatGateway, InMemoryAlertStateRepository

from replywatch.application.services.alert_dispatcher import (
    AlertDispatcher,
    render_batch,
)
from replywatch.application.services.alert_state_store import AlertStateStore
from replywatch.domain.entities.decision import Alert
from replywatch.domain.entities.message import Message, RawMessage
from replywatch.domain.entities.policy import Policy

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def make_alert(index: int) -> Alert:
    message = Message(
        channel_id="C1",
        message_id=f"M{index}",
        author_id="U1",
        author_name=f"client{index}",
        author_roles=frozenset({"acme-ext"}),
        created_at=NOW - timedelta(minutes=50),
        excerpt=f"question {index}",
        url=f"https://discord.com/channels/G/C1/M{index}",
    )
    return Alert(message=message, decided_at=NOW)


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def gateway() -> FakeChatGateway:
    return FakeChatGateway()


@pytest.fixture
def store() -> AlertStateStore:
    return AlertStateStore(
        InMemoryAlertStateRepository(), structlog.stdlib.get_logger("test")
    )


@pytest.fixture
def sleep() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def dispatcher(
    gateway: FakeChatGateway, store: AlertStateStore, sleep: SleepRecorder
) -> AlertDispatcher:
    return AlertDispatcher(
        gateway=gateway,
        store=store,
        policy=Policy(batch_size=5, batch_interval=timedelta(seconds=2)),
        alert_channel_id="ALERTS",
        logger=structlog.stdlib.get_logger("test"),
        mention_role="staff",
        sleep=sleep,
    )


class TestRenderBatch:
    """Tests for render_batch."""

    def test_contains_mention_author_and_link(self) -> None:
        text = render_batch([make_alert(1), make_alert(2)], "staff")

        assert text.startswith("<@&staff> 2 unanswered messages:")
        assert "**client1** in <#C1> (50 min): question 1" in text
        assert "[Jump to message](https://discord.com/channels/G/C1/M2)" in text

    def test_single_alert_without_mention(self) -> None:
        text = render_batch([make_alert(1)], None)

        assert text.startswith("1 unanswered message:")
        assert "<@&" not in text

    def test_client_text_cannot_mention(self) -> None:
        raw = RawMessage(
            channel_id="C1",
            message_id="M9",
            author_id="U1",
            author_name="<@&admins>",
            content="ping <@&admins> and @everyone",
            created_at=NOW - timedelta(minutes=50),
        )
        message = Message.from_raw(raw, frozenset({"acme-ext"}))
        alert = Alert(message=message, decided_at=NOW)

        text = render_batch([alert], "staff")

        assert text.count("<@&") == 1
        assert "@everyone" not in text


class TestDispatch:
    """Tests for AlertDispatcher.dispatch."""

    async def test_batches_and_spacing(
        self,
        dispatcher: AlertDispatcher,
        gateway: FakeChatGateway,
        sleep: SleepRecorder,
    ) -> None:
        alerts = [make_alert(i) for i in range(12)]

        sent = await dispatcher.dispatch(alerts)

        assert sent == 12
        assert len(gateway.sent) == 3
        assert all(channel == "ALERTS" for channel, _ in gateway.sent)
        assert "5 unanswered messages" in gateway.sent[0][1]
        assert "2 unanswered messages" in gateway.sent[2][1]
        # Pause between batches only, not before the first
        assert sleep.calls == [2.0, 2.0]

    async def test_records_marked_after_send(
        self, dispatcher: AlertDispatcher, store: AlertStateStore
    ) -> None:
        await dispatcher.dispatch([make_alert(1)])

        record = store.get("C1:M1")
        assert record is not None
        assert record.alerted is True
        assert record.last_alert_at == NOW

    async def test_failed_batch_leaves_records_unmarked(
        self,
        dispatcher: AlertDispatcher,
        gateway: FakeChatGateway,
        store: AlertStateStore,
    ) -> None:
        gateway.failing_sends.add(0)
        alerts = [make_alert(i) for i in range(7)]

        sent = await dispatcher.dispatch(alerts)

        assert sent == 2
        assert len(gateway.sent) == 1
        for i in range(5):
            assert store.get(f"C1:M{i}") is None
        assert store.get("C1:M5") is not None
        assert store.get("C1:M6") is not None

    async def test_nothing_to_send(
        self, dispatcher: AlertDispatcher, gateway: FakeChatGateway
    ) -> None:
        assert await dispatcher.dispatch([]) == 0
        assert gateway.sent == []
