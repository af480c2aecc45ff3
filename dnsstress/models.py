"""Data models for the load generator and its statistics."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List


@dataclass
class StressConfig:
    """Runtime options, built once and handed to every component."""
    domains: List[str] = field(default_factory=list)
    resolver: str = '127.0.0.1:53'
    concurrency: int = 50
    display_interval: float = 1.0  # seconds between two flushes
    verbose: bool = False
    iterative: bool = False
    random_ids: bool = False
    flood: bool = False
    timeout: float = 2.0  # read deadline in wait mode, seconds
    display_step: int = 5  # iterations between two delta reports


class ControlSignal(Enum):
    """Lifecycle messages for the aggregator."""
    FLUSH = 'flush'
    TOTAL = 'total'
    CLOSE = 'close'


@dataclass(frozen=True)
class StatsDelta:
    """Counters accumulated by one worker since its previous report."""
    sent: int = 0
    errors: int = 0
    bytes_sent: int = 0
    elapsed: float = 0.0
    max_latency: float = 0.0
    flush: bool = False

    @classmethod
    def tick(cls) -> 'StatsDelta':
        return cls(flush=True)

    @property
    def is_empty(self) -> bool:
        return not (self.sent or self.errors or self.bytes_sent)


@dataclass
class WorkerState:
    """Local counters of a single worker, never shared."""
    sent: int = 0
    errors: int = 0
    bytes_sent: int = 0
    elapsed: float = 0.0
    max_latency: float = 0.0

    def record_latency(self, seconds: float):
        self.elapsed += seconds
        if seconds > self.max_latency:
            self.max_latency = seconds

    def as_delta(self) -> StatsDelta:
        return StatsDelta(
            sent=self.sent,
            errors=self.errors,
            bytes_sent=self.bytes_sent,
            elapsed=self.elapsed,
            max_latency=self.max_latency,
        )

    def reset(self):
        self.sent = 0
        self.errors = 0
        self.bytes_sent = 0
        self.elapsed = 0.0
        self.max_latency = 0.0


@dataclass
class AggregateState:
    """Running totals owned by the aggregator thread."""
    started_at: float
    window_start: float
    window_sent: int = 0
    window_errors: int = 0
    window_bytes: int = 0
    window_elapsed: float = 0.0
    window_max_latency: float = 0.0
    grand_total_sent: int = 0
    grand_total_errors: int = 0
    grand_total_bytes: int = 0

    def reset_window(self, now: float):
        self.grand_total_sent += self.window_sent
        self.grand_total_errors += self.window_errors
        self.grand_total_bytes += self.window_bytes
        self.window_sent = 0
        self.window_errors = 0
        self.window_bytes = 0
        self.window_elapsed = 0.0
        self.window_max_latency = 0.0
        self.window_start = now


@dataclass
class WindowReport:
    """Statistics computed for one flush window."""
    window_number: int
    timestamp: datetime  # Wall clock time of the flush
    sent: int
    errors: int
    bytes_sent: int
    run_time: float
    requests_per_second: int
    replies_per_second: int
    mean_latency_ms: float
    max_latency_ms: float
    error_percentage: int


@dataclass
class TotalReport:
    """Point-in-time summary over the whole run."""
    sent: int
    errors: int
    bytes_sent: int
    run_time: float
    requests_per_second: int
    error_percentage: int
