"""Domain entities."""

from replywatch.domain.entities.alert_record import AlertRecord
from replywatch.domain.entities.decision import Alert, Decision
from replywatch.domain.entities.message import (
    Message,
    Participant,
    RawMessage,
    alert_key,
)
from replywatch.domain.entities.policy import Policy, QuietHours

__all__ = [
    "Alert",
    "AlertRecord",
    "Decision",
    "Message",
    "Participant",
    "Policy",
    "QuietHours",
    "RawMessage",
    "alert_key",
]
