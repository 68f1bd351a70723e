"""Command line interface: evaluate date math expressions and print UTC results."""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .api import evaluate, parse
from .core.config_manager import ConfigManager
from .core.error_handler import ConfigurationError, DateMathError, ErrorHandler
from .core.logging_manager import LoggingManager


def format_instant(moment) -> str:
    """ISO-8601 UTC with millisecond precision, e.g. ``2014-11-18T14:27:32.000Z``."""
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="datemath",
                                     description="Evaluate date math expressions such as now-1d/d")
    parser.add_argument("expressions", nargs="+", metavar="EXPRESSION", help="Expression to evaluate")
    parser.add_argument("--now", help="Reference instant in ISO-8601 (default: current time)")
    parser.add_argument("--timezone", "--tz", help="Evaluation timezone, e.g. Europe/Berlin (default: UTC)")
    parser.add_argument("--round-up", action="store_true", default=None,
                        help="Round to the last instant of the period instead of the first")
    parser.add_argument("--fiscal-year-start", metavar="MM-DD", help="First day of the fiscal year")
    parser.add_argument("--start-of-week", metavar="DAY", help="First day of the week (default: monday)")
    parser.add_argument("--config", type=Path, help="Directory holding default_config.yaml")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], help="Console log level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the datemath command."""
    args = build_parser().parse_args(argv)

    LoggingManager().configure(level=args.log_level)
    logger = LoggingManager.get_logger(__name__)
    error_handler = ErrorHandler(logger)

    overrides = {
        "now": args.now,
        "timezone": args.timezone,
        "round_up": args.round_up,
        "fiscal_year_start": args.fiscal_year_start,
        "start_of_week": args.start_of_week,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}

    try:
        config = ConfigManager(args.config).load_config().with_overrides(**overrides)
        if config.now is None:
            # Every expression in one invocation shares a single "now"
            config = config.with_overrides(now=config.reference_time())
    except ConfigurationError as e:
        error_handler.handle_error(e, "configuration")
        print(f"error: {e}", file=sys.stderr)
        return 2

    exit_code = 0
    for text in args.expressions:
        try:
            print(format_instant(evaluate(parse(text), config)))
        except DateMathError as e:
            error_handler.handle_error(e, text)
            print(f"error: {text}: {e}", file=sys.stderr)
            exit_code = 1
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
