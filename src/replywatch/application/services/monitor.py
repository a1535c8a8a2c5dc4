"""SLA monitoring run."""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

from pydantic import BaseModel
from structlog.stdlib import BoundLogger

from replywatch.application.services.alert_dispatcher import AlertDispatcher
from replywatch.application.services.alert_state_store import AlertStateStore
from replywatch.application.services.conversation_window import ConversationWindow
from replywatch.application.services.member_directory import MemberDirectory
from replywatch.application.services.policy_engine import decide
from replywatch.application.services.response_resolver import ResponseResolver
from replywatch.application.services.role_classifier import RoleClassifier
from replywatch.domain.entities.decision import Alert, Decision
from replywatch.domain.entities.policy import Policy
from replywatch.domain.errors import TransportError
from replywatch.domain.gateways.chat_gateway import ChatGateway


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(timezone.utc)


class RunReport(BaseModel):
    """Summary of one monitoring run."""

    channels_scanned: int = 0
    channels_failed: int = 0
    messages_evaluated: int = 0
    messages_skipped: int = 0
    records_cleared: int = 0
    alerts_suppressed: int = 0
    alerts_decided: int = 0
    alerts_sent: int = 0
    alerts_failed: int = 0
    timed_out: bool = False


class Monitor:
    """Runs one pass of breach detection over every monitored channel.

    A run loads the alert state, evaluates each channel's external messages
    oldest first, dispatches the resulting alerts and flushes the state once.
    The whole pass is bounded by ``policy.run_deadline``; when it expires,
    or the run is cancelled, the mutations made so far are still flushed.
    """

    def __init__(
        self,
        gateway: ChatGateway,
        store: AlertStateStore,
        policy: Policy,
        alert_channel_id: str,
        logger: BoundLogger,
        mention_role: str | None = None,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            gateway: Chat transport and member directory.
            store: Alert state store (loaded by ``run``).
            policy: Monitoring policy.
            alert_channel_id: Channel that receives alerts; never scanned.
            logger: Logger instance.
            mention_role: Role mentioned in alert batches.
            clock: Returns the current time when ``run`` gets no ``now``.
            sleep: Awaitable sleep used between alert batches.
        """
        self._gateway = gateway
        self._store = store
        self._policy = policy
        self._alert_channel_id = alert_channel_id
        self._logger = logger
        self._clock = clock
        self._classifier = RoleClassifier(policy.external_roles, policy.internal_roles)
        self._dispatcher = AlertDispatcher(
            gateway=gateway,
            store=store,
            policy=policy,
            alert_channel_id=alert_channel_id,
            logger=logger,
            mention_role=mention_role,
            sleep=sleep,
        )

    async def run(self, now: datetime | None = None) -> RunReport:
        """Run one monitoring pass.

        Args:
            now: Evaluation time. Defaults to the clock.

        Returns:
            The run report.

        Raises:
            PersistenceError: If the state cannot be loaded or flushed.
            AuthenticationError: If the transport rejects the credentials.
        """
        now = now or self._clock()
        report = RunReport()
        await self._store.load()

        try:
            async with asyncio.timeout(self._policy.run_deadline.total_seconds()):
                await self._scan(now, report)
        except TimeoutError:
            report.timed_out = True
            self._logger.warning(
                "Run deadline expired, keeping partial progress",
                deadline_seconds=self._policy.run_deadline.total_seconds(),
            )
        finally:
            await self._store.flush()

        self._logger.info("Run finished", **report.model_dump())
        return report

    async def _scan(self, now: datetime, report: RunReport) -> None:
        if not self._classifier.has_external_roles:
            self._logger.warning("No external roles configured, nothing to monitor")
            return

        try:
            channels = await self._gateway.list_text_channels()
        except TransportError as e:
            self._logger.error("Failed to list channels", error=str(e))
            return

        # An empty listing leaves every record in place
        if channels:
            gone = self._store.retain_channels(channels)
            if gone:
                self._logger.info(
                    "Forgot records of channels no longer listed",
                    message_keys=gone,
                )

        members = MemberDirectory(self._gateway)
        resolver = ResponseResolver(
            gateway=self._gateway,
            classifier=self._classifier,
            members=members,
            logger=self._logger,
            check_reactions=self._policy.reaction_responses,
        )

        alerts: list[Alert] = []
        for channel_id in channels:
            if channel_id == self._alert_channel_id:
                continue
            try:
                window = await ConversationWindow.build(
                    channel_id=channel_id,
                    lookback=self._policy.lookback,
                    now=now,
                    gateway=self._gateway,
                    members=members,
                    logger=self._logger,
                    page_size=self._policy.page_size,
                )
            except TransportError as e:
                report.channels_failed += 1
                self._logger.error(
                    "Failed to read channel history, skipping channel",
                    channel_id=channel_id,
                    error=str(e),
                )
                continue

            report.channels_scanned += 1
            alerts.extend(await self._evaluate(window, resolver, now, report))

            dropped = self._store.retain(channel_id, window.observed_keys)
            if dropped:
                self._logger.debug(
                    "Forgot records outside the lookback",
                    channel_id=channel_id,
                    message_keys=dropped,
                )

        report.alerts_decided = len(alerts)
        if alerts:
            report.alerts_sent = await self._dispatcher.dispatch(alerts)
            report.alerts_failed = report.alerts_decided - report.alerts_sent
        else:
            self._logger.info("No alerts needed")

    async def _evaluate(
        self,
        window: ConversationWindow,
        resolver: ResponseResolver,
        now: datetime,
        report: RunReport,
    ) -> list[Alert]:
        """Evaluate the external messages of one window, oldest first."""
        alerts: list[Alert] = []

        for message in window:
            if not self._classifier.is_external(message.author_roles):
                continue
            report.messages_evaluated += 1

            try:
                answered = await resolver.is_answered(message, window)
            except TransportError as e:
                report.messages_skipped += 1
                self._logger.warning(
                    "Failed to resolve responses, skipping message",
                    channel_id=message.channel_id,
                    message_id=message.message_id,
                    error=str(e),
                )
                continue

            if answered:
                if self._store.clear(message.key):
                    report.records_cleared += 1
                    self._logger.info(
                        "Message answered, alert state cleared",
                        channel_id=message.channel_id,
                        message_id=message.message_id,
                    )
                continue

            decision = decide(message, self._store.get(message.key), self._policy, now)
            if decision is Decision.ALERT_NOW:
                alerts.append(Alert(message=message, decided_at=now))
                self._logger.info(
                    "Alert queued",
                    channel_id=message.channel_id,
                    message_id=message.message_id,
                    author=message.author_name,
                )
            elif decision is Decision.SUPPRESS:
                report.alerts_suppressed += 1
                self._logger.debug(
                    "Alert suppressed by cooldown",
                    channel_id=message.channel_id,
                    message_id=message.message_id,
                )

        return alerts
