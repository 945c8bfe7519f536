"""Command line entry point"""

import logging
import sys
from typing import List, Optional

from .counters import find_interface_for_ip
from .errors import SpeedtestError
from .fetcher import RequestsFetcher
from .options import build_parser, config_from_args
from .output import format_csv, format_header, format_speed
from .speedtest import Target, list_nearby, run_standard_test

_logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int = logging.WARNING) -> None:
    """Log to stderr, so stdout only carries results."""
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,
    )


def main(argv: Optional[List[str]] = None, fetcher=None, **collaborators) -> int:
    """
    Run the speedtest command.

    Returns:
        Process exit status, (0 on success, 1 on any error)
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        configure_logging(logging.DEBUG)
    elif args.quiet:
        configure_logging(logging.ERROR)
    else:
        configure_logging()

    try:
        config = config_from_args(args)
    except ValueError as e:
        parser.print_usage(sys.stderr)
        print(f"Error: {e}", file=sys.stderr)
        return 1

    fetcher = fetcher or RequestsFetcher(timeout=config.timeout)

    def show_target(target: Target) -> None:
        if not config.csv:
            for line in format_header(target.server.id, target.server.host):
                print(line, flush=True)

    def show_speed(kind: str, bps: int) -> None:
        if not config.csv:
            print(format_speed(kind, bps), flush=True)

    try:
        if config.list_only:
            lines = list_nearby(
                config,
                fetcher,
                selector=collaborators.get("selector"),
                interface_lookup=collaborators.get("interface_lookup", find_interface_for_ip),
            )
            for line in lines:
                print(line)
            return 0
        result = run_standard_test(
            config,
            fetcher,
            on_target=show_target,
            on_speed=show_speed,
            **collaborators,
        )
    except SpeedtestError as e:
        _logger.debug("Run failed", exc_info=True)
        print(str(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled", file=sys.stderr)
        return 1

    if config.csv:
        print(format_csv(result, config.field_separator))
    return 0
