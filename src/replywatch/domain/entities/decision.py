"""Policy decisions and the alerts they produce."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

from replywatch.domain.entities.message import Message


class Decision(str, Enum):
    """Outcome of evaluating an unanswered message against the policy."""

    NO_ACTION = "no_action"
    SUPPRESS = "suppress"
    ALERT_NOW = "alert_now"


class Alert(BaseModel):
    """An ALERT_NOW decision waiting to be dispatched."""

    model_config = ConfigDict(frozen=True)

    message: Message
    decided_at: datetime

    @property
    def key(self) -> str:
        return self.message.key

    @property
    def age_minutes(self) -> int:
        return int((self.decided_at - self.message.created_at).total_seconds() // 60)
