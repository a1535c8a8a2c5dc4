"""Logging infrastructure module."""

from replywatch.infrastructure.logging.setup import (
    bind_run_id,
    get_logger,
    setup_logging,
)

__all__ = ["bind_run_id", "get_logger", "setup_logging"]
