"""Persistence infrastructure."""

from replywatch.infrastructure.persistence.alert_state_repository import (
    SqliteAlertStateRepository,
)
from replywatch.infrastructure.persistence.database import Database

__all__ = ["Database", "SqliteAlertStateRepository"]
