"""Application entry point for replywatch."""

import argparse
import asyncio
import signal
import sys
from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from structlog.stdlib import BoundLogger

from replywatch.application.services.alert_state_store import AlertStateStore
from replywatch.application.services.monitor import Monitor, utc_now
from replywatch.config import (
    AppConfig,
    ConfigError,
    ConfigFileNotFoundError,
    load_config,
)
from replywatch.domain.entities.message import alert_key
from replywatch.domain.entities.policy import Policy
from replywatch.domain.errors import (
    AuthenticationError,
    PersistenceError,
    TransportError,
)
from replywatch.infrastructure.discord import DiscordGateway
from replywatch.infrastructure.logging import bind_run_id, get_logger, setup_logging
from replywatch.infrastructure.persistence import (
    Database,
    SqliteAlertStateRepository,
)

# Exit code when the run was interrupted by a signal
EXIT_INTERRUPTED = 130


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Parsed arguments namespace. ``command`` is "run" when omitted.
    """
    parser = argparse.ArgumentParser(
        description="replywatch - unanswered message monitor"
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to configuration file (default: config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Run one monitoring pass (default)")

    snooze = subparsers.add_parser("snooze", help="Silence alerts for a message")
    snooze.add_argument("channel_id")
    snooze.add_argument("message_id")
    snooze.add_argument(
        "--minutes",
        type=int,
        default=60,
        help="Snooze duration in minutes (default: 60)",
    )

    handle = subparsers.add_parser("handle", help="Mark a message as handled")
    handle.add_argument("channel_id")
    handle.add_argument("message_id")

    namespace = parser.parse_args(args)
    if namespace.command is None:
        namespace.command = "run"
    return namespace


async def resolve_policy(
    config: AppConfig, gateway: DiscordGateway, logger: BoundLogger
) -> Policy:
    """Merge roles discovered by name suffix into the configured policy."""
    policy = config.policy
    suffix = config.discord.external_role_suffix
    if not suffix:
        return policy

    try:
        discovered = await gateway.discover_roles(suffix)
    except TransportError as e:
        logger.error(
            "Failed to discover external roles", suffix=suffix, error=str(e)
        )
        return policy

    if not discovered:
        logger.warning("No roles found with suffix", suffix=suffix)
    return policy.with_external_roles(discovered)


def mention_role_for(config: AppConfig, policy: Policy) -> str | None:
    if config.discord.mention_role_id:
        return config.discord.mention_role_id
    if len(policy.internal_roles) == 1:
        return next(iter(policy.internal_roles))
    return None


async def run_monitor(
    config: AppConfig, store: AlertStateStore, logger: BoundLogger
) -> int:
    """Run one monitoring pass against Discord.

    SIGINT and SIGTERM cancel the pass; the alert state is still flushed.

    Returns:
        Exit code.
    """
    async with DiscordGateway(config.discord, get_logger("discord")) as gateway:
        policy = await resolve_policy(config, gateway, logger)
        monitor = Monitor(
            gateway=gateway,
            store=store,
            policy=policy,
            alert_channel_id=config.discord.alert_channel_id,
            logger=get_logger("monitor"),
            mention_role=mention_role_for(config, policy),
        )

        run_task = asyncio.create_task(monitor.run())

        def signal_handler(sig: signal.Signals) -> None:
            logger.info("Received signal, stopping run", signal=sig.name)
            run_task.cancel()

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler, sig)

        try:
            report = await run_task
        except asyncio.CancelledError:
            logger.warning("Run interrupted, partial progress saved")
            return EXIT_INTERRUPTED
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)

    logger.info(
        "Run complete",
        alerts_sent=report.alerts_sent,
        alerts_failed=report.alerts_failed,
        timed_out=report.timed_out,
    )
    return 0


async def update_record(args: argparse.Namespace, store: AlertStateStore) -> int:
    """Apply an operator ``snooze`` or ``handle`` command to the alert state."""
    await store.load()
    key = alert_key(args.channel_id, args.message_id)

    if args.command == "snooze":
        until = utc_now() + timedelta(minutes=args.minutes)
        store.snooze(key, until)
        message = f"Snoozed {key} until {until.isoformat()}"
    else:
        store.mark_handled(key)
        message = f"Marked {key} as handled"

    await store.flush()
    print(message)
    return 0


async def main_async(args: argparse.Namespace) -> int:
    """Async main function.

    Args:
        args: Parsed command line arguments.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    # 1. Load configuration
    config = load_config(args.config)

    # 2. Initialize logging
    setup_logging(config.logging)
    logger = get_logger(__name__)
    run_id = bind_run_id()
    logger.info("Starting replywatch", command=args.command, run_id=run_id)

    # 3. Open the alert state database
    try:
        database = Database(config.database.url)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    try:
        await database.initialize()
    except (OSError, SQLAlchemyError) as e:
        raise PersistenceError(f"Failed to open alert state database: {e}") from e

    try:
        store = AlertStateStore(
            SqliteAlertStateRepository(database), get_logger("alert_state")
        )
        if args.command == "run":
            return await run_monitor(config, store, logger)
        return await update_record(args, store)
    finally:
        await database.close()


def main() -> None:
    """Main entry point."""
    args = parse_args()
    config_path = args.config

    try:
        exit_code = asyncio.run(main_async(args))
        sys.exit(exit_code)
    except ConfigFileNotFoundError:
        print(f"Error: {config_path} not found", file=sys.stderr)
        sys.exit(1)
    except ConfigError as e:
        print(f"Error: Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except ValidationError as e:
        print(f"Error: Configuration validation error: {e}", file=sys.stderr)
        sys.exit(1)
    except AuthenticationError as e:
        print(f"Error: Authentication failed: {e}", file=sys.stderr)
        sys.exit(1)
    except PersistenceError as e:
        print(f"Error: Alert state persistence failed: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        sys.exit(EXIT_INTERRUPTED)


if __name__ == "__main__":
    main()
