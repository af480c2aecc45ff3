"""Workers that drive query/response cycles against the resolver."""

import socket
import sys
import threading
import time
from queue import Queue
from typing import Optional

import dns.exception

from .errors import ResponseError, SetupError, TransmitError
from .models import StatsDelta, StressConfig, WorkerState
from .query import QueryTemplate
from .utils import split_host_port

RECV_BUFFER_SIZE = 65535


class Worker:
    """Send queries for one domain over a single UDP socket until shutdown.

    In wait mode every query is followed by a read bounded by the configured
    timeout; in flood mode the worker only writes. Counters are kept locally
    and handed to the aggregator every ``display_step`` iterations.
    """

    def __init__(self, worker_id: int, domain: str, config: StressConfig,
                 inbox: Queue, shutdown: threading.Event):
        self.worker_id = worker_id
        self.domain = domain
        self.config = config
        self.inbox = inbox
        self.shutdown = shutdown
        self.state = WorkerState()
        self.template = QueryTemplate(domain, iterative=config.iterative,
                                      random_ids=config.random_ids)
        self.sock: Optional[socket.socket] = None

    def open_socket(self) -> socket.socket:
        """Open the datagram socket reused for the worker's whole lifetime.

        Raises:
            SetupError: If the resolver cannot be resolved or dialed.
        """
        try:
            host, port = split_host_port(self.config.resolver)
            family, socktype, proto, _, sockaddr = socket.getaddrinfo(
                host, int(port), type=socket.SOCK_DGRAM)[0]
            sock = socket.socket(family, socktype, proto)
        except (OSError, ValueError) as e:
            raise SetupError(f"cannot open socket to {self.config.resolver}: {e}") from e

        try:
            sock.connect(sockaddr)
        except OSError as e:
            sock.close()
            raise SetupError(f"cannot connect to {self.config.resolver}: {e}") from e

        if not self.config.flood:
            sock.settimeout(self.config.timeout)
        return sock

    def run(self):
        if self.config.verbose:
            print(f"Starting thread #{self.worker_id}.", file=sys.stderr)

        try:
            self.sock = self.open_socket()
        except SetupError as e:
            print(f"Error: {self.domain} error: {e}", file=sys.stderr)
            self.inbox.put(StatsDelta(errors=1))
            return

        step = self.transmit if self.config.flood else self.exchange
        try:
            while not self.shutdown.is_set():
                for _ in range(self.config.display_step):
                    if self.shutdown.is_set():
                        break
                    step()
                self.emit()
        finally:
            self.sock.close()

    def exchange(self):
        """Send one query and wait for its reply."""
        wire = self.template.to_wire()
        self.state.sent += 1
        start = time.perf_counter()
        try:
            self._send(wire)
            self._await_reply(start + self.config.timeout)
        except (TransmitError, ResponseError) as e:
            self.state.errors += 1
            self._log_error(e)
        finally:
            self.state.record_latency(time.perf_counter() - start)

    def transmit(self):
        """Send one query without reading anything back."""
        wire = self.template.to_wire()
        try:
            self._send(wire)
        except TransmitError as e:
            self._log_error(e)
            return
        self.state.sent += 1

    def emit(self):
        """Hand the counters gathered since the last report to the aggregator."""
        delta = self.state.as_delta()
        if delta.is_empty:
            return
        # Blocks while the aggregator is behind
        self.inbox.put(delta)
        self.state.reset()

    def _send(self, wire: bytes):
        try:
            self.sock.send(wire)
        except OSError as e:
            raise TransmitError(str(e)) from e
        self.state.bytes_sent += len(wire)

    def _await_reply(self, deadline: float):
        # Stale replies to earlier (timed out) queries are skipped
        while True:
            remaining = deadline - time.perf_counter()
            if remaining <= 0:
                raise ResponseError('timed out waiting for a reply')
            self.sock.settimeout(remaining)
            try:
                data = self.sock.recv(RECV_BUFFER_SIZE)
            except socket.timeout as e:
                raise ResponseError('timed out waiting for a reply') from e
            except OSError as e:
                raise ResponseError(str(e)) from e

            try:
                if self.template.matches(data):
                    return
            except dns.exception.DNSException as e:
                raise ResponseError(f"unparsable reply: {e}") from e

    def _log_error(self, error: Exception):
        if self.config.verbose:
            print(f"{self.domain} error: {error} ({self.config.resolver})", file=sys.stderr)
