"""Aggregate worker deltas into periodic rate reports."""

import threading
import time
from datetime import datetime, timezone
from queue import Queue
from typing import Callable, List, Optional, Union

from rich.console import Console

from .exporter import PrometheusMetricsExporter
from .models import AggregateState, ControlSignal, StatsDelta, TotalReport, WindowReport
from .utils import error_percentage, per_second


class StatsAggregator:
    """Sole owner of the aggregate counters.

    Consumes a single FIFO inbox carrying both ``StatsDelta`` messages from
    the workers and ``ControlSignal`` messages from the ticker and the
    driver, so control messages are seen in arrival order and every delta
    queued before a ``TOTAL`` is part of it.
    """

    def __init__(self, inbox: Queue, console: Optional[Console] = None,
                 exporter: Optional[PrometheusMetricsExporter] = None,
                 flood: bool = False, clock: Callable[[], float] = time.monotonic):
        self.inbox = inbox
        self.console = console or Console(highlight=False)
        self.exporter = exporter
        self.flood = flood
        self.clock = clock
        now = clock()
        self.state = AggregateState(started_at=now, window_start=now)
        self.windows: List[WindowReport] = []
        self.last_total: Optional[TotalReport] = None
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self.run, name="dnsstress-aggregator", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)

    def run(self):
        while self.handle(self.inbox.get()):
            pass

    def handle(self, message: Union[StatsDelta, ControlSignal]) -> bool:
        """Process one inbox message; return False once asked to close."""
        if isinstance(message, StatsDelta):
            self.accumulate(message)
            if message.flush:
                self.flush()
        elif message is ControlSignal.FLUSH:
            self.flush()
        elif message is ControlSignal.TOTAL:
            self.total()
        elif message is ControlSignal.CLOSE:
            return False
        else:
            raise TypeError(f"unexpected aggregator message: {message!r}")
        return True

    def accumulate(self, delta: StatsDelta):
        state = self.state
        state.window_sent += delta.sent
        state.window_errors += delta.errors
        state.window_bytes += delta.bytes_sent
        state.window_elapsed += delta.elapsed
        if delta.max_latency > state.window_max_latency:
            state.window_max_latency = delta.max_latency

    def flush(self) -> WindowReport:
        """Report the current window and start a new one."""
        state = self.state
        now = self.clock()
        run_time = now - state.window_start
        sent = state.window_sent
        errors = state.window_errors

        report = WindowReport(
            window_number=len(self.windows) + 1,
            timestamp=datetime.now(timezone.utc),
            sent=sent,
            errors=errors,
            bytes_sent=state.window_bytes,
            run_time=run_time,
            requests_per_second=per_second(sent, run_time),
            replies_per_second=per_second(max(sent - errors, 0), run_time),
            mean_latency_ms=1000.0 * state.window_elapsed / sent if sent > 0 else 0.0,
            max_latency_ms=1000.0 * state.window_max_latency,
            error_percentage=error_percentage(errors, sent),
        )
        self.windows.append(report)
        self.console.print(self.format_window(report), soft_wrap=True)
        if self.exporter is not None:
            self.exporter.export_window(report)

        state.reset_window(now)
        return report

    def total(self) -> TotalReport:
        """Summarize the whole run without touching the current window."""
        state = self.state
        run_time = self.clock() - state.started_at
        sent = state.grand_total_sent + state.window_sent
        errors = state.grand_total_errors + state.window_errors
        report = TotalReport(
            sent=sent,
            errors=errors,
            bytes_sent=state.grand_total_bytes + state.window_bytes,
            run_time=run_time,
            requests_per_second=per_second(sent, run_time),
            error_percentage=error_percentage(errors, sent),
        )
        self.last_total = report
        self.console.print(self.format_total(report), soft_wrap=True)
        return report

    def format_window(self, report: WindowReport) -> str:
        if report.sent == 0 and report.errors == 0:
            return "No requests were sent."

        line = f"Requests sent: {report.requests_per_second:6d}r/s"
        if not self.flood:
            line += (
                f"  Replies received: {report.replies_per_second:6d}r/s"
                f" (mean={report.mean_latency_ms:.0f}ms / max={report.max_latency_ms:.0f}ms)"
            )
        if report.errors > 0:
            line += f"  [red]Errors: {report.errors} ({report.error_percentage}%)[/red]"
        return line

    def format_total(self, report: TotalReport) -> str:
        line = (
            f"Total requests sent: {report.sent} in {report.run_time:.1f}s"
            f" ({report.requests_per_second}r/s)"
        )
        if report.errors > 0:
            line += f"  [red]Errors: {report.errors} ({report.error_percentage}%)[/red]"
        return line


class Ticker:
    """Put a FLUSH signal on the aggregator inbox at a fixed interval."""

    def __init__(self, inbox: Queue, interval: float):
        self.inbox = inbox
        self.interval = interval
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run(self):
        # Blocks until the aggregator has room for the tick
        while not self._stopped.wait(self.interval):
            self.inbox.put(ControlSignal.FLUSH)

    def start(self):
        self._thread = threading.Thread(target=self.run, name="dnsstress-ticker", daemon=True)
        self._thread.start()

    def stop(self):
        self._stopped.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is not None:
            self._thread.join(timeout)
