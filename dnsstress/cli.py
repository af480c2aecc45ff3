"""
Send DNS requests as fast as possible to a given server and display the
rate, optionally pushing the statistics to Prometheus.
"""

import sys
import argparse
from queue import Queue
from typing import Callable, List, Optional

from rich.console import Console

from .aggregator import StatsAggregator, Ticker
from .errors import InvalidAddress
from .exporter import PrometheusMetricsExporter
from .models import ControlSignal, StressConfig
from .pool import WorkerPool
from .utils import normalize_domain, parse_ip_port, prepare_headers, send_metrics_remote_write


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='dnsstress',
        usage='%(prog)s [option ...] targetdomain [targetdomain [...] ]',
        description='Send DNS requests as fast as possible to a given server and display the rate.',
        allow_abbrev=False,
    )
    parser.add_argument(
        'domains',
        nargs='*',
        metavar='targetdomain',
        help='Domains to query, used round-robin across the workers'
    )
    parser.add_argument(
        '-concurrency', '--concurrency',
        type=int,
        default=50,
        help='Number of concurrent workers (default: 50)'
    )
    parser.add_argument(
        '-r', '--resolver',
        default='127.0.0.1:53',
        help='Resolver to test against (default: 127.0.0.1:53)'
    )
    parser.add_argument(
        '-d', '--display-interval',
        type=int,
        default=1000,
        help='Update interval of the stats, in ms (default: 1000)'
    )
    parser.add_argument(
        '-t', '--timeout',
        type=int,
        default=2000,
        help='Time to wait for a reply before counting an error, in ms (default: 2000)'
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose logging'
    )
    parser.add_argument(
        '-i', '--iterative',
        action='store_true',
        help='Do an iterative query instead of recursive (to stress authoritative nameservers)'
    )
    parser.add_argument(
        '-random', '--random',
        dest='random_ids',
        action='store_true',
        help='Use random Request Identifiers for each query'
    )
    parser.add_argument(
        '-f', '--flood',
        action='store_true',
        help="Don't wait for an answer before sending another"
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Serve the statistics as Prometheus metrics on this port'
    )
    parser.add_argument(
        '--remote-write-url',
        help='Prometheus remote write endpoint URL; the windows are pushed on exit'
    )
    parser.add_argument(
        '--remote-write-header',
        action='append',
        help='Additional header for remote write (format: Key=Value)'
    )
    parser.add_argument(
        '--instance-label',
        default='dnsstress',
        help='Value for the instance label added to all metrics (default: dnsstress)'
    )
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Build the remote write payload without sending it'
    )
    parser.add_argument(
        '--debug-file',
        help='Save the uncompressed remote write payload as JSON to the specified file'
    )
    return parser


def config_from_args(args: argparse.Namespace) -> StressConfig:
    """Build the run configuration from parsed arguments.

    Raises:
        InvalidAddress: If the resolver address cannot be parsed.
    """
    return StressConfig(
        domains=[normalize_domain(domain) for domain in args.domains],
        resolver=parse_ip_port(args.resolver),
        concurrency=args.concurrency,
        display_interval=args.display_interval / 1000.0,
        verbose=args.verbose,
        iterative=args.iterative,
        random_ids=args.random_ids,
        flood=args.flood,
        timeout=args.timeout / 1000.0,
    )


def wait_for_enter():
    print("Press ENTER to quit")
    try:
        input()
    except (EOFError, KeyboardInterrupt):
        pass


def run(config: StressConfig, console: Optional[Console] = None,
        exporter: Optional[PrometheusMetricsExporter] = None,
        wait: Callable[[], None] = wait_for_enter) -> StatsAggregator:
    """Generate load until ``wait`` returns, then print the totals."""
    inbox: Queue = Queue(maxsize=max(config.concurrency, 1))
    aggregator = StatsAggregator(inbox, console=console, exporter=exporter, flood=config.flood)
    ticker = Ticker(inbox, config.display_interval)
    pool = WorkerPool(config, inbox)

    aggregator.start()
    ticker.start()
    print("Started timer.")
    pool.start()
    print(f"Started {config.concurrency} threads.")

    try:
        wait()
    finally:
        ticker.stop()
        pool.stop()
        pool.join()
        ticker.join()
        # Every delta is queued by now, the totals account for all of them
        inbox.put(ControlSignal.TOTAL)
        inbox.put(ControlSignal.CLOSE)
        aggregator.join()
    return aggregator


def main(argv: Optional[List[str]] = None):
    print("dnsstress - dns stress tool")

    parser = build_arg_parser()
    args = parser.parse_args(argv)

    # We need at least one target domain
    if not args.domains:
        parser.print_help(sys.stderr)
        sys.exit(1)
    if args.concurrency < 1:
        parser.error('-concurrency must be at least 1')

    try:
        config = config_from_args(args)
    except InvalidAddress as e:
        print(f"Error: Invalid resolver address '{args.resolver}': {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Queried domains: {', '.join(config.domains)}.")
    print(f"Resolver: {config.resolver}")
    if config.flood:
        print("Flooding mode, replies are not read.")

    exporter = PrometheusMetricsExporter()
    if args.metrics_port:
        exporter.serve(args.metrics_port)
        print(f"Serving metrics on port {args.metrics_port}")

    aggregator = run(config, exporter=exporter)

    if args.remote_write_url:
        run_labels = {
            'resolver': config.resolver,
            'concurrency': str(config.concurrency),
            'mode': 'flood' if config.flood else 'wait',
            'domains': ','.join(config.domains),
        }
        headers = prepare_headers(args.remote_write_header)
        if not send_metrics_remote_write(
            args.remote_write_url, headers, aggregator.windows, args.instance_label,
            args.verbose, args.dry_run, args.debug_file, run_labels=run_labels
        ):
            sys.exit(1)


if __name__ == '__main__':
    main()
