"""AlertRecord entity for alert lifecycle persistence."""

from datetime import datetime

from sqlmodel import Field, SQLModel


class AlertRecord(SQLModel, table=True):
    """Alert lifecycle state of one breach candidate.

    Attributes:
        id: Composite key in format `{channel_id}:{message_id}`.
        channel_id: Channel of the monitored message.
        message_id: ID of the monitored message.
        last_alert_at: When the last alert for this message was sent.
        snoozed_until: Alerts are silenced until this time.
        handled: Whether an operator marked the message as handled.
        alerted: Whether an alert has ever been sent for this message.
    """

    __tablename__ = "alert_records"

    id: str = Field(primary_key=True)
    channel_id: str = Field(index=True)
    message_id: str
    last_alert_at: datetime | None = None
    snoozed_until: datetime | None = None
    handled: bool = Field(default=False)
    alerted: bool = Field(default=False)

    def is_silenced(self, now: datetime) -> bool:
        """Return True if the record is handled or snoozed past ``now``."""
        if self.handled:
            return True
        return self.snoozed_until is not None and self.snoozed_until > now
