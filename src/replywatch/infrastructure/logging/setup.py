"""Structured logging for replywatch runs."""

import logging
import sys
from typing import TextIO

import structlog
import ulid
from structlog.stdlib import BoundLogger

from replywatch.config.models import LoggingConfig

# Libraries whose DEBUG output drowns the run log
QUIET_LOGGERS = ("aiohttp.access", "sqlalchemy.engine")


def _pre_chain() -> list[structlog.typing.Processor]:
    """Processors applied to both structlog and stdlib records."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(log_format: str) -> structlog.typing.Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(config: LoggingConfig, stream: TextIO | None = None) -> None:
    """Route structlog and stdlib logging through one handler.

    Records are written to ``stream`` (stderr by default) so stdout only
    carries command output. Calling it again replaces the previous setup.

    Args:
        config: Level and output format.
        stream: Destination of the log lines.
    """
    level = getattr(logging, config.level)
    pre_chain = _pre_chain()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(config.format),
            ],
        )
    )

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str | None = None) -> BoundLogger:
    """Return a structlog logger, usually named after the module."""
    return structlog.stdlib.get_logger(name)


def bind_run_id(run_id: str | None = None) -> str:
    """Bind a run ID to every log line emitted in the current context.

    Args:
        run_id: Run ID to bind. A new ULID is generated when omitted.

    Returns:
        The bound run ID.
    """
    run_id = run_id or str(ulid.new())
    structlog.contextvars.bind_contextvars(run_id=run_id)
    return run_id
