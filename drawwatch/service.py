from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from sqlalchemy.exc import ArgumentError

from .config import ConfigurationError, WatchSettings, load_config
from .datasource import HtmlTableDataSource
from .notifier import NtfyNotifier
from .scheduler import CheckResult, DrawCheckScheduler
from .state import build_state_store


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )


def build_scheduler(settings: WatchSettings, logger: Optional[logging.Logger] = None) -> DrawCheckScheduler:
    store = build_state_store(settings.store)
    datasource = HtmlTableDataSource(settings.scraper)
    notifier = NtfyNotifier(settings.notifier)
    return DrawCheckScheduler(settings, datasource, store, notifier, logger=logger)


def _load_scheduler(dotenv_path: Optional[str], logger: Optional[logging.Logger] = None) -> DrawCheckScheduler:
    """Load settings and build the adapters, reporting any bad setting as `ConfigurationError`."""
    settings = load_config(dotenv_path)
    try:
        return build_scheduler(settings, logger=logger)
    except (ArgumentError, ImportError) as exc:
        # Unknown SQL dialect or missing database driver.
        raise ConfigurationError(f"Cannot open the state store: {exc}") from exc


async def run_check(dotenv_path: Optional[str] = None) -> CheckResult:
    """Run one scheduled check; configuration problems yield a 500 result."""
    logger = logging.getLogger("drawwatch.scheduler")
    logger.info("Scheduled check triggered.")
    try:
        scheduler = _load_scheduler(dotenv_path, logger=logger)
    except ConfigurationError as exc:
        logger.error("%s Exiting.", exc)
        return CheckResult.config_error(str(exc))

    return await scheduler.run_once()


def handle_scheduled_event(dotenv_path: Optional[str] = None) -> CheckResult:
    return asyncio.run(run_check(dotenv_path))


async def run(args: argparse.Namespace) -> int:
    configure_logging(args.verbose)
    if not args.loop:
        result = await run_check(args.env_file)
        logging.getLogger("drawwatch").info("%s", result.body)
        return 0 if result.status_code < 500 else 1

    try:
        scheduler = _load_scheduler(args.env_file)
    except ConfigurationError as exc:
        logging.getLogger("drawwatch").error("Configuration error: %s", exc)
        return 1
    await scheduler.run_forever()
    return 0


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="SuperEnalotto draw watcher. Runs one check per invocation; "
        "the scheduler must not start overlapping runs.",
    )
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file with credentials")
    parser.add_argument(
        "--loop", action="store_true", help="Keep polling every POLL_INTERVAL_SECONDS instead of exiting."
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging (default INFO)."
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    try:
        exit_code = asyncio.run(run(args))
    except KeyboardInterrupt:
        print("Watcher stopped by user.")
        return
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
