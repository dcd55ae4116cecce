"""
``petcare-notifier``: run the notification scheduler as a standalone process.

Examples:
  # Run the scheduler until interrupted
  petcare-notifier run

  # Run a single check and print the counts
  petcare-notifier once

  # Create missing tables, or apply the Alembic migrations
  petcare-notifier init-db
  petcare-notifier init-db --migrate
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import List, Optional

from .database.connection import close_engine, create_engine, wait_for_database
from .database.migrations import run_migrations_async
from .database.session import SessionManager
from .exceptions import PetCareException
from .models import Base
from .notifications.scheduler import NotificationScheduler
from .utils.config import (
    ConfigError,
    DatabaseConfig,
    EnvironmentConfig,
    LoggingConfigurator,
    NotificationSettings,
    parse_check_interval,
)

logger = logging.getLogger("petcare_core.cli")


def check_interval(value: str) -> int:
    """argparse type for ``--interval``: positive minutes or ``*/N * * * *``."""
    try:
        return parse_check_interval(value)
    except ConfigError as e:
        raise argparse.ArgumentTypeError(str(e))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="petcare-notifier",
        description="PetCare notification scheduler",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    parser.add_argument(
        "--database-url",
        help="Database URL (default: DATABASE_URL or the DB_* variables)",
    )
    parser.add_argument("--log-file", help="Append log output to this file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    run_parser = subparsers.add_parser("run", help="Run the scheduler loop")
    run_parser.add_argument(
        "--interval",
        type=check_interval,
        help=(
            "Minutes between checks, or a '*/N * * * *' cron expression "
            "(default: NOTIFICATION_CHECK_INTERVAL or 15)"
        ),
    )

    subparsers.add_parser("once", help="Run a single notification check")

    init_parser = subparsers.add_parser("init-db", help="Prepare the database schema")
    init_parser.add_argument(
        "--migrate",
        action="store_true",
        help="Apply Alembic migrations instead of creating tables directly",
    )
    return parser


def _database_url(args: argparse.Namespace) -> str:
    url = args.database_url or EnvironmentConfig.get_str("DATABASE_URL")
    if url:
        return url
    return DatabaseConfig.from_environment().url


async def _run(args: argparse.Namespace, settings: NotificationSettings) -> int:
    engine = create_engine(_database_url(args))
    session_manager = SessionManager(engine)
    try:
        await wait_for_database(engine)

        if args.command == "init-db":
            if args.migrate:
                await run_migrations_async(engine)
            else:
                await session_manager.create_schema(Base.metadata)
            return 0

        scheduler = NotificationScheduler(session_manager, settings)

        if args.command == "once":
            result = await scheduler.run_once()
            print(json.dumps(result.to_dict(), indent=2))
            return 0 if result.ok else 1

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Windows event loops do not support signal handlers.
                pass

        scheduler.start()
        await stop_event.wait()
        await scheduler.stop()
        return 0
    finally:
        await close_engine(engine)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        args.command = "run"

    LoggingConfigurator.configure_basic_logging(
        "DEBUG" if args.verbose else "INFO", log_file=args.log_file
    )

    try:
        settings = NotificationSettings.from_environment()
        if getattr(args, "interval", None) is not None:
            settings.check_interval_minutes = args.interval
        return asyncio.run(_run(args, settings))
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except PetCareException as e:
        e.log_error(logger)
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
