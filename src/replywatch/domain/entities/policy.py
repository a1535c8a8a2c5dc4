"""Alerting policy value objects."""

from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator


class QuietHours(BaseModel):
    """Time-of-day range during which only urgent breaches alert.

    The range is half-open, ``[start, end)``, and wraps midnight when
    ``start`` is later than ``end`` (e.g. 21:00 to 08:00).
    """

    model_config = ConfigDict(frozen=True)

    start: time
    end: time
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    def contains(self, moment: datetime) -> bool:
        """Return True if ``moment`` falls inside the quiet range."""
        local = moment.astimezone(ZoneInfo(self.timezone)).time()
        if self.start == self.end:
            return False
        if self.start < self.end:
            return self.start <= local < self.end
        return local >= self.start or local < self.end


class Policy(BaseModel):
    """Immutable monitoring policy.

    Durations accept a number of seconds or an ISO-8601 duration string.
    """

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    wait_time: timedelta = Field(
        default=timedelta(minutes=45),
        description="Minimum unanswered age before the first alert.",
    )
    alert_cooldown: timedelta = Field(
        default=timedelta(minutes=30),
        description="Minimum interval between repeat alerts for one message.",
    )
    quiet_hours: QuietHours | None = None
    urgency_floor: timedelta = Field(
        default=timedelta(hours=12),
        description="Age a message must exceed to alert during quiet hours.",
    )
    lookback: timedelta = Field(
        default=timedelta(hours=24),
        description="How far back channel history is scanned.",
    )
    page_size: int = Field(default=50, ge=1, le=100)
    batch_size: int = Field(default=5, ge=1)
    batch_interval: timedelta = Field(default=timedelta(seconds=1))
    run_deadline: timedelta = Field(default=timedelta(minutes=5))
    reaction_responses: bool = Field(
        default=True,
        description="Whether a staff reaction counts as a qualifying response.",
    )
    external_roles: frozenset[str] = frozenset()
    internal_roles: frozenset[str] = frozenset()

    def with_external_roles(self, roles: set[str] | frozenset[str]) -> "Policy":
        """Return a copy whose external roles also include ``roles``."""
        return self.model_copy(
            update={"external_roles": self.external_roles | frozenset(roles)}
        )
