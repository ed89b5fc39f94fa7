"""Command-line entry point for rebate lookups."""

import sys
import argparse
import logging
from typing import List, Optional

from config import LOGGING_LEVEL, LOGGING_FORMAT, LOG_FILE

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    """Always log to file; mirror to stderr with --verbose."""
    handlers = [logging.FileHandler(LOG_FILE)]

    if verbose:
        # Use stderr for logs (not stdout) to keep stdout clean for user output
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.INFO)
        handlers.append(console_handler)

    logging.basicConfig(
        level=LOGGING_LEVEL,
        format=LOGGING_FORMAT,
        handlers=handlers
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rebate-finder",
        description="Find federal, state and county energy rebate programs",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log to stderr")
    subparsers = parser.add_subparsers(dest="command", required=True)

    find = subparsers.add_parser("find", help="Find programs (cache first, then live search)")
    find.add_argument("category", help="Federal, State or County")
    find.add_argument("county", nargs="?", help="County name (County only)")

    check = subparsers.add_parser("check", help="Check the cache only")
    check.add_argument("category", help="Federal, State or County")
    check.add_argument("county", nargs="?", help="County name (County only)")

    subparsers.add_parser("status", help="Show cache status")
    subparsers.add_parser("purge", help="Delete cache rows older than the TTL")
    return parser


def run(args: argparse.Namespace, engine=None, ui=None) -> int:
    """Execute a parsed command. Returns the process exit code."""
    from engine.rebate_engine import RebateEngine
    from ui import RebateUI
    from workflows.rebate_search.workflow import PipelineError

    ui = ui or RebateUI()
    engine = engine or RebateEngine()

    try:
        if args.command == "find":
            answer = engine.find_programs(args.category, args.county)
            ui.display_programs(answer)
        elif args.command == "check":
            lookup = engine.check_cache(args.category, args.county)
            ui.display_lookup(lookup, args.category, args.county)
        elif args.command == "status":
            ui.display_status(engine.status())
        elif args.command == "purge":
            removed = engine.purge_expired()
            ui.display_message(f"✓ Purged {removed} expired rows")
        return 0
    except ValueError as e:
        ui.display_error("error", str(e))
        return 2
    except PipelineError as e:
        ui.display_error("error", "Rebate search failed", e.message)
        return 1
    finally:
        # Waits for background cache writes
        engine.close()


def main(argv: Optional[List[str]] = None):
    """Parse arguments, configure logging and run one command."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    code = run(args)
    logging.shutdown()
    sys.exit(code)


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("\nExiting.")
        sys.exit(0)
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        sys.exit(1)
