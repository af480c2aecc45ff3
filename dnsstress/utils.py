"""Utility functions and constants for address handling and rate math."""

import ipaddress
import math
import sys
from typing import Dict, List, Optional, Tuple

from .errors import InvalidAddress

DEFAULT_DNS_PORT = '53'


def round_half_away(value: float) -> int:
    """Round to the nearest integer, halves going away from zero.

    round_half_away(2.5) == 3 and round_half_away(-2.5) == -3, unlike the
    builtin round() which rounds halves to even.
    """
    if value < 0:
        return int(math.ceil(value - 0.5))
    return int(math.floor(value + 0.5))


def per_second(count: float, seconds: float) -> int:
    """Rounded rate of count over seconds, 0 when no time elapsed."""
    if seconds <= 0:
        return 0
    return round_half_away(count / seconds)


def error_percentage(errors: int, sent: int) -> int:
    """Rounded share of errors in sent, 0 when nothing was sent."""
    if sent <= 0:
        return 0
    return round_half_away(100.0 * errors / sent)


def normalize_domain(name: str) -> str:
    """Return the fully qualified form of a domain (with the trailing dot)."""
    name = name.strip()
    if not name.endswith('.'):
        name += '.'
    return name


def join_host_port(host: str, port: str) -> str:
    if ':' in host:
        return f'[{host}]:{port}'
    return f'{host}:{port}'


def split_host_port(address: str) -> Tuple[str, str]:
    """Split "host:port" or "[ipv6]:port" into its host and port.

    Raises:
        InvalidAddress: If the address has no port, a malformed port, or an
            unbracketed host containing colons.
    """
    if address.startswith('['):
        end = address.find(']')
        if end < 0:
            raise InvalidAddress(f"missing ']' in address {address!r}")
        host = address[1:end]
        rest = address[end + 1:]
        if not rest.startswith(':'):
            raise InvalidAddress(f"missing port in address {address!r}")
        port = rest[1:]
    else:
        if ':' not in address:
            raise InvalidAddress(f"missing port in address {address!r}")
        host, port = address.rsplit(':', 1)
        if ':' in host:
            raise InvalidAddress(f"too many colons in address {address!r}")

    if not host or '[' in host or ']' in host:
        raise InvalidAddress(f"invalid host in address {address!r}")
    if not (port.isascii() and port.isdigit()) or int(port) > 65535:
        raise InvalidAddress(f"invalid port {port!r} in address {address!r}")
    return host, port


def parse_ip_port(address: str) -> str:
    """Return a "host:port" string suitable for dialing the resolver.

    A bare IP literal gets the default DNS port, IPv6 hosts are bracketed.
    """
    address = address.strip()
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        host, port = split_host_port(address)
        return join_host_port(host, port)
    return join_host_port(str(ip), DEFAULT_DNS_PORT)


def prepare_headers(remote_write_headers: Optional[List[str]]) -> Dict[str, str]:
    """Prepare headers dictionary from command-line arguments."""
    headers = {}
    if remote_write_headers:
        for header in remote_write_headers:
            if '=' in header:
                key, value = header.split('=', 1)
                headers[key] = value
    return headers


def send_metrics_remote_write(remote_write_url: str, headers: Dict[str, str], windows: List,
                              instance_label: str, verbose: bool = False, dry_run: bool = False,
                              debug_file: Optional[str] = None,
                              run_labels: Optional[Dict[str, str]] = None) -> bool:
    """Send the flushed windows via a remote write endpoint.

    Args:
        remote_write_url: URL of the Prometheus remote write endpoint
        headers: HTTP headers to include in the request
        windows: Window reports to send
        instance_label: Value for the instance label added to all metrics
        verbose: Print every metric sample
        dry_run: If True, build the payload but skip sending it
        debug_file: Optional path to save the uncompressed payload as JSON
        run_labels: Optional run parameters for the dnsstress_info metric
    """
    # The protobuf stack is only loaded when remote write is requested
    from .remote_write import RemoteWriteClient

    if dry_run:
        print(f"\nDry-run mode: Processing metrics (not sending to {remote_write_url})...")
    else:
        print(f"\nSending metrics to {remote_write_url}...")

    client = RemoteWriteClient(remote_write_url, headers, instance_label, verbose)
    if not client.send_metrics_from_windows(windows, dry_run=dry_run, debug_file=debug_file,
                                            run_labels=run_labels):
        print("Failed to process/send metrics", file=sys.stderr)
        return False

    if dry_run:
        print(f"Dry-run completed: Processed metrics for {len(windows)} window(s)")
    else:
        print(f"Successfully sent metrics for {len(windows)} window(s)")
    return True
