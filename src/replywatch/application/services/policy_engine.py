"""Breach decision policy."""

from datetime import datetime

from replywatch.domain.entities.alert_record import AlertRecord
from replywatch.domain.entities.decision import Decision
from replywatch.domain.entities.message import Message
from replywatch.domain.entities.policy import Policy


def is_eligible(message: Message, policy: Policy, now: datetime) -> bool:
    """Return True if an unanswered message is old enough to alert on.

    Outside quiet hours a message qualifies once it is older than
    ``wait_time``. During quiet hours it must also be older than
    ``urgency_floor``.
    """
    age = now - message.created_at
    if age <= policy.wait_time:
        return False
    if policy.quiet_hours is not None and policy.quiet_hours.contains(now):
        return age > policy.urgency_floor
    return True


def decide(
    message: Message,
    record: AlertRecord | None,
    policy: Policy,
    now: datetime,
) -> Decision:
    """Decide what to do about an unanswered external message.

    Pure function of the message age, the message's alert record and the
    policy. State changes are applied by the caller based on the result.

    Args:
        message: The unanswered message.
        record: Its alert record, or None if it has never been tracked.
        policy: Thresholds to apply.
        now: Evaluation time (timezone-aware).

    Returns:
        NO_ACTION if the message is silenced or not yet eligible, SUPPRESS
        if it is eligible but still inside the alert cooldown, ALERT_NOW
        otherwise.
    """
    if record is not None and record.is_silenced(now):
        return Decision.NO_ACTION

    if not is_eligible(message, policy, now):
        return Decision.NO_ACTION

    last_alert_at = record.last_alert_at if record is not None else None
    if last_alert_at is not None and now - last_alert_at <= policy.alert_cooldown:
        return Decision.SUPPRESS

    return Decision.ALERT_NOW
