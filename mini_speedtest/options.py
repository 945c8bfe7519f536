"""Argument parser options for speedtest"""

import argparse

from .config import CLIENT_CONFIG_URL, SERVER_LIST_URL, VALID_DOWNLOAD_SIZES, VALID_UPLOAD_SIZES, SpeedtestConfig
from .utils import CounterWidth

EPILOG = """\
If the server, (or server ID), or device are not specified, values are looked
up from the speedtest.net client configuration. If they cannot be determined
automatically, you will need to include them on the command line.

The device to monitor is the one carrying the client IP reported by the
speedtest.net configuration. Behind a firewall/NAT, specify the device.

Pick up/down counts and sizes that keep the link busy for the whole sampling
interval; more parallel clients help reach a steady throughput.
"""


def add_run_options(parser):
    """
    Add speedtest-specific command line options to an argument parser.

    Args:
        parser: argparse.ArgumentParser instance

    Returns:
        The parser with added options
    """
    defaults = SpeedtestConfig()
    parser.add_argument('-l', dest='list_only', action='store_true',
                        help='List client details and nearby servers, (no tests)')
    parser.add_argument('-D', dest='download_only', action='store_true',
                        help='Measure download only, (default both)')
    parser.add_argument('-U', dest='upload_only', action='store_true',
                        help='Measure upload only, (default both)')
    parser.add_argument('-t', dest='duration', type=int, default=defaults.duration, metavar='secs',
                        help=f'Measure for [secs] seconds, (default {defaults.duration})')
    parser.add_argument('-c', dest='clients', type=int, default=defaults.clients, metavar='clients',
                        help=f'Number of clients run in parallel, (default {defaults.clients})')
    parser.add_argument('-url', dest='server_list_url', default=SERVER_LIST_URL, metavar='URL',
                        help=f'URL for downloading server details, (default "{SERVER_LIST_URL}")')
    parser.add_argument('-cfgurl', dest='client_config_url', default=CLIENT_CONFIG_URL, metavar='URL',
                        help=f'URL for the client configuration, (default "{CLIENT_CONFIG_URL}")')
    parser.add_argument('-r', dest='reuse_server_list', action='store_true',
                        help='Reuse saved server list, (if available)')
    parser.add_argument('-n', dest='servcnt', type=int, default=defaults.servcnt, metavar='count',
                        help=f'Select from "count" nearby servers, (default {defaults.servcnt})')
    parser.add_argument('-R', dest='random_server', action='store_true',
                        help='Choose random nearby server, (default: use latency)')
    output = parser.add_mutually_exclusive_group()
    output.add_argument('-fs', dest='field_separator', metavar='ch',
                        help='Output CSV format, using "ch" as field separator')
    output.add_argument('-csv', dest='field_separator', action='store_const', const=',',
                        help='Output CSV, same as "-fs ,"')
    parser.add_argument('-k', dest='terminate_workers', action='store_true',
                        help='Terminate transfer workers when each measurement ends')
    parser.add_argument('-32', dest='narrow_counters', action='store_true',
                        help='Treat counters and clock as wrapping 32-bit values')
    parser.add_argument('-ds', dest='download_size', type=int, default=defaults.download_size,
                        choices=VALID_DOWNLOAD_SIZES, metavar='downsize',
                        help=f'Download resource size, (default {defaults.download_size}). '
                             f'Valid: {list(VALID_DOWNLOAD_SIZES)}')
    parser.add_argument('-us', dest='upload_size', type=int, default=defaults.upload_size,
                        choices=VALID_UPLOAD_SIZES, metavar='upsize',
                        help=f'Upload resource size, (default {defaults.upload_size}). '
                             f'Valid: {list(VALID_UPLOAD_SIZES)}')
    parser.add_argument('-dc', dest='download_count', type=int, default=defaults.download_count,
                        metavar='downcount', help=f'Download repeat count, (default {defaults.download_count})')
    parser.add_argument('-uc', dest='upload_count', type=int, default=defaults.upload_count,
                        metavar='upcount', help=f'Upload repeat count, (default {defaults.upload_count})')
    target = parser.add_mutually_exclusive_group()
    target.add_argument('-s', dest='server', metavar='server',
                        help='Speedtest server, (hostname or IP, include ":port", typically ":8080")')
    target.add_argument('-i', dest='server_id', metavar='id',
                        help='Server ID, (speedtest.net ID)')
    parser.add_argument('-d', dest='device', metavar='device',
                        help='Device to monitor, (ISP uplink device)')
    parser.add_argument('--timeout', type=int, default=defaults.timeout,
                        help=f'Request timeout in seconds, (default {defaults.timeout})')
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='Only log errors')
    return parser


def build_parser(prog=None):
    parser = argparse.ArgumentParser(
        prog=prog,
        description='Measure download/upload speed against a speedtest.net server '
                    'by sampling interface byte counters.',
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    return add_run_options(parser)


def config_from_args(args) -> SpeedtestConfig:
    """Turn parsed arguments into a SpeedtestConfig. Raises ValueError on bad values."""
    download, upload = True, True
    if args.download_only != args.upload_only:
        download, upload = args.download_only, args.upload_only
    return SpeedtestConfig(
        download=download,
        upload=upload,
        duration=args.duration,
        clients=args.clients,
        servcnt=args.servcnt,
        random_server=args.random_server,
        list_only=args.list_only,
        field_separator=args.field_separator,
        terminate_workers=args.terminate_workers,
        counter_width=CounterWidth.NARROW if args.narrow_counters else CounterWidth.NATIVE,
        download_size=args.download_size,
        upload_size=args.upload_size,
        download_count=args.download_count,
        upload_count=args.upload_count,
        server=args.server,
        server_id=args.server_id,
        device=args.device,
        server_list_url=args.server_list_url,
        client_config_url=args.client_config_url,
        reuse_server_list=args.reuse_server_list,
        timeout=args.timeout,
    )
