"""CLI entry point for the X intelligence digest.

This module runs one fetch-and-deliver cycle from the command line.

Usage:
    python -m x_intel_digest [options]
"""

from __future__ import annotations

import argparse
import logging
import logging.config
import sys
from typing import NoReturn

from pydantic import ValidationError

from x_intel_digest import __version__
from x_intel_digest.config import Settings, clear_settings_cache, get_settings
from x_intel_digest.crawler.orchestrator import NoRecentPostsError
from x_intel_digest.notifier.models import BotConfigurationError
from x_intel_digest.pipeline import DigestPipeline

# Application info
APP_VERSION = __version__

# Exit codes
EXIT_SUCCESS = 0
EXIT_ERROR = 1
EXIT_CONFIG_ERROR = 2
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="x-intel-digest",
        description="Collect the last 24 hours of posts from X accounts and push a digest to QQ.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m x_intel_digest                    Fetch and deliver one digest
  python -m x_intel_digest --config-check     Validate config and exit
  python -m x_intel_digest --dry-run          Print the digest instead of sending it
  python -m x_intel_digest --log-level DEBUG  Enable debug logging
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {APP_VERSION}",
    )

    parser.add_argument(
        "--config-check",
        action="store_true",
        help="Validate configuration and exit without fetching",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level (default: from settings)",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Fetch and render the digest but don't deliver it",
    )

    parser.add_argument(
        "--label",
        default=None,
        help="Topic label for the digest header (default: from settings)",
    )

    return parser


def configure_logging(level: str) -> None:
    """Configure logging for the application.

    Args:
        level: Logging level string (DEBUG, INFO, etc.)
    """
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": (
                    "%(asctime)s [%(levelname)s] %(name)s (%(filename)s:%(lineno)d): %(message)s"
                ),
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "detailed" if level == "DEBUG" else "standard",
                "stream": "ext://sys.stdout",
            },
        },
        "root": {
            "level": level,
            "handlers": ["console"],
        },
        # Quieter logging for noisy libraries
        "loggers": {
            "httpx": {"level": "WARNING"},
            "httpcore": {"level": "WARNING"},
        },
    }
    logging.config.dictConfig(config)


def print_config_summary(settings: Settings, dry_run: bool) -> None:
    """Print a summary of the configuration.

    Args:
        settings: Application settings.
        dry_run: Whether dry-run mode is enabled.
    """
    summary = settings.redacted_summary()
    x = summary["x"]
    onebot = summary["onebot"]
    print("Configuration:")
    print(f"  Accounts: {x['accounts']}")
    print(f"  Official API: {'enabled' if settings.x.has_api_credentials else 'disabled'}")
    print(f"  Proxy: {summary['proxy']}")
    print(f"  OneBot API: {onebot['api_url']}")
    print(f"  Group: {onebot['group_id']}")
    print(f"  User: {onebot['user_id']}")
    print(f"  Log Level: {summary['log_level']}")
    print(f"  Dry Run: {dry_run}")
    print()


def validate_config() -> Settings | None:
    """Validate and load configuration.

    Returns:
        Settings instance if valid, None if invalid.
    """
    try:
        # Clear cache to force reload
        clear_settings_cache()
        return get_settings()
    except ValidationError as e:
        print("Configuration validation failed:", file=sys.stderr)
        for error in e.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            msg = error["msg"]
            print(f"  {field}: {msg}", file=sys.stderr)
        return None


def run_config_check(settings: Settings) -> int:
    """Run configuration check and exit.

    Args:
        settings: Validated settings.

    Returns:
        Exit code (0 for success, 2 if delivery is not configured).
    """
    print("Configuration is valid!")
    print()
    print_config_summary(settings, dry_run=False)

    if not settings.x.accounts:
        print("  Warning: X_ACCOUNTS is empty (the crawler's account file may still apply)")

    if settings.onebot.enabled:
        print("  OneBot: configured")
    else:
        print("  OneBot: not configured (set ONEBOT_API_URL and a group or user id)")
        return EXIT_CONFIG_ERROR

    print()
    print("All checks passed. Ready to run.")
    return EXIT_SUCCESS


def run_once(settings: Settings, dry_run: bool, label: str | None = None) -> int:
    """Run one fetch-and-deliver cycle.

    Args:
        settings: Application settings.
        dry_run: Whether to skip delivery and print the digest.
        label: Optional digest label override.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        pipeline = DigestPipeline(settings, dry_run=dry_run, label=label)
        result = pipeline.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except Exception as e:
        logger.exception("Run failed: %s", e)
        return EXIT_ERROR

    if dry_run and result.digest is not None:
        print(result.digest)

    if isinstance(result.error, BotConfigurationError):
        return EXIT_CONFIG_ERROR
    if isinstance(result.error, NoRecentPostsError):
        logger.info("%s", result.error)
        return EXIT_ERROR
    if result.error is not None:
        logger.error("Delivery failed: %s", result.error)
        return EXIT_ERROR
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:]).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Validate configuration first
    settings = validate_config()
    if settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    # Determine effective log level
    log_level = args.log_level or settings.log_level
    configure_logging(log_level)

    # Config check mode
    if args.config_check:
        sys.exit(run_config_check(settings))

    # Determine dry-run mode
    dry_run = args.dry_run or settings.dry_run

    print_config_summary(settings, dry_run)

    sys.exit(run_once(settings, dry_run, label=args.label))


if __name__ == "__main__":
    main()
