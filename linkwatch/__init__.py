"""linkwatch - Internet connectivity monitor with outage logging."""

import argparse
import logging
import signal
import sys
from threading import Event
from typing import Optional

__version__ = "0.1.0"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Global shutdown event for signal handlers
_shutdown_event: Optional[Event] = None

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool = False) -> None:
    """Configure console logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        stream=sys.stdout,
    )


def _attach_log_file(log_file: str) -> logging.Handler:
    """Append all log records to ``log_file`` in addition to the console.

    Raises:
        OSError: If the file cannot be opened for appending.
    """
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logging.getLogger().addHandler(handler)
    return handler


def _handle_shutdown(signum: int, frame: object) -> None:
    """Signal handler for graceful shutdown."""
    sig_name = signal.Signals(signum).name
    logger.info("Received %s, initiating shutdown...", sig_name)
    if _shutdown_event is not None:
        _shutdown_event.set()


def _cmd_run(args: argparse.Namespace) -> None:
    """Execute the run command - start the monitoring loop."""
    global _shutdown_event

    _setup_logging(args.verbose)

    logger.info("linkwatch %s starting...", __version__)

    from .config import ConfigError, load_config
    from .scheduler import Scheduler

    # 1. Load configuration
    try:
        config = load_config(args.config)
        logger.info("Configuration loaded from %s", args.config)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    # 2. Open the durable log destination
    try:
        _attach_log_file(config.log_file)
    except OSError as e:
        logger.error("Failed to open log file '%s': %s", config.log_file, e)
        sys.exit(1)

    # 3. Setup shutdown handler
    _shutdown_event = Event()
    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)

    # 4. Start the loop
    scheduler = Scheduler(config)

    try:
        scheduler.start(_shutdown_event)

        # 5. Wait for shutdown signal
        _shutdown_event.wait()

    except KeyboardInterrupt:
        # Backup handler if signal doesn't work
        logger.info("Keyboard interrupt received")
    finally:
        scheduler.stop()


def _cmd_check(args: argparse.Namespace) -> None:
    """Execute the check command - run a single round and report it."""
    from .aggregator import RoundAggregator
    from .checker import TargetChecker
    from .config import ConfigError, load_config

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"Error: {e}")
        sys.exit(1)

    checker = TargetChecker(retry_delay=config.retry_delay_seconds, timeout=config.request_timeout_seconds)
    result = RoundAggregator(checker).run_round(config.targets, config.max_retries)

    for outcome in result.outcomes:
        if outcome.succeeded:
            print(f"✓ UP:   {outcome.target} (attempts: {outcome.attempts_used})")
        else:
            print(f"✗ DOWN: {outcome.target} (attempts: {outcome.attempts_used}) - {outcome.last_error}")

    verdict = "reachable" if result.internet_reachable else "unreachable"
    print(f"\nResult: internet {verdict} ({result.successes}/{len(result.outcomes)} targets up)")

    if not result.internet_reachable:
        sys.exit(1)


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for the linkwatch package."""
    parser = argparse.ArgumentParser(description="linkwatch - Internet connectivity monitor with outage logging")
    parser.add_argument(
        "--version",
        action="version",
        version=f"linkwatch {__version__}",
    )
    parser.add_argument(
        "-c", "--config",
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # Subcommand options default to SUPPRESS so they never overwrite
    # values given before the subcommand name.

    # Run subcommand (default behavior)
    run_parser = subparsers.add_parser(
        "run",
        help="Start the monitoring loop (default)",
    )
    run_parser.add_argument(
        "-c", "--config",
        default=argparse.SUPPRESS,
        help="Path to configuration file (default: config.yaml)",
    )
    run_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=argparse.SUPPRESS,
        help="Enable verbose (debug) logging",
    )
    run_parser.set_defaults(func=_cmd_run)

    # Check subcommand
    check_parser = subparsers.add_parser(
        "check",
        help="Run a single round against all targets and exit",
    )
    check_parser.add_argument(
        "-c", "--config",
        default=argparse.SUPPRESS,
        help="Path to configuration file (default: config.yaml)",
    )
    check_parser.set_defaults(func=_cmd_check)

    args = parser.parse_args(argv)

    # Default to 'run' if no command specified
    if args.command is None:
        args.func = _cmd_run

    args.func(args)
