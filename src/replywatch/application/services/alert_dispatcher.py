"""Batched alert delivery."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence

from jinja2 import Template
from structlog.stdlib import BoundLogger

from replywatch.application.services.alert_state_store import AlertStateStore
from replywatch.domain.entities.decision import Alert
from replywatch.domain.entities.policy import Policy
from replywatch.domain.errors import DispatchError
from replywatch.domain.gateways.chat_gateway import ChatGateway

ALERT_BATCH_TEMPLATE = Template(
    "{% if mention_role %}<@&{{ mention_role }}> {% endif %}"
    "{{ alerts | length }} unanswered message{{ 's' if alerts | length != 1 }}:\n"
    "{% for alert in alerts %}"
    "- **{{ alert.message.author_name }}** in <#{{ alert.message.channel_id }}>"
    " ({{ alert.age_minutes }} min)"
    "{% if alert.message.excerpt %}: {{ alert.message.excerpt }}{% endif %}\n"
    "  [Jump to message]({{ alert.message.url }})\n"
    "{% endfor %}"
)


def render_batch(alerts: Sequence[Alert], mention_role: str | None) -> str:
    """Render one batch of alerts as a single chat message."""
    text = ALERT_BATCH_TEMPLATE.render(alerts=alerts, mention_role=mention_role)
    return text.rstrip()


class AlertDispatcher:
    """Sends ALERT_NOW decisions to the alert channel in spaced batches.

    Alerts of a batch are recorded in the store, stamped with the time they
    were decided, only after the batch was delivered. A failed batch leaves
    its records untouched so the next run alerts again.
    """

    def __init__(
        self,
        gateway: ChatGateway,
        store: AlertStateStore,
        policy: Policy,
        alert_channel_id: str,
        logger: BoundLogger,
        mention_role: str | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            gateway: Transport used to send batches.
            store: Alert state to update after each delivered batch.
            policy: Provides batch size and inter-batch spacing.
            alert_channel_id: Channel that receives the alerts.
            logger: Logger instance.
            mention_role: Role mentioned at the top of every batch.
            sleep: Awaitable sleep used between batches.
        """
        self._gateway = gateway
        self._store = store
        self._policy = policy
        self._alert_channel_id = alert_channel_id
        self._logger = logger
        self._sleep = sleep or asyncio.sleep
        self._mention_role = mention_role

    def batches(self, alerts: Sequence[Alert]) -> list[list[Alert]]:
        size = self._policy.batch_size
        return [list(alerts[i : i + size]) for i in range(0, len(alerts), size)]

    async def dispatch(self, alerts: Sequence[Alert]) -> int:
        """Send ``alerts`` in batches.

        Args:
            alerts: ALERT_NOW decisions in the order they were made.

        Returns:
            Number of alerts delivered.
        """
        sent = 0
        interval = self._policy.batch_interval.total_seconds()

        for index, batch in enumerate(self.batches(alerts)):
            if index > 0 and interval > 0:
                await self._sleep(interval)

            text = render_batch(batch, self._mention_role)
            try:
                await self._gateway.send_message(self._alert_channel_id, text)
            except DispatchError as e:
                self._logger.error(
                    "Failed to send alert batch",
                    batch=index,
                    message_keys=[alert.key for alert in batch],
                    error=str(e),
                )
                continue

            for alert in batch:
                self._store.record_alert(alert.key, alert.decided_at)
            sent += len(batch)
            self._logger.info(
                "Alert batch sent",
                batch=index,
                alerts=len(batch),
                message_keys=[alert.key for alert in batch],
            )

        return sent
