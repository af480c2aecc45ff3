"""Expose load generator statistics as Prometheus metrics."""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, start_http_server

from .models import WindowReport


class PrometheusMetricsExporter:
    """Mirror every flushed window into a Prometheus registry."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        self._setup_metrics()

    def _setup_metrics(self):
        """Set up Prometheus metric definitions."""
        # Query counters
        self.queries_sent = Counter(
            'dnsstress_queries_sent_total',
            'Total number of DNS queries sent',
            registry=self.registry
        )
        self.replies_received = Counter(
            'dnsstress_replies_received_total',
            'Total number of DNS queries that got a reply',
            registry=self.registry
        )
        self.errors = Counter(
            'dnsstress_errors_total',
            'Total number of failed exchanges',
            registry=self.registry
        )
        self.bytes_sent = Counter(
            'dnsstress_bytes_sent_total',
            'Total number of query bytes written to the resolver',
            registry=self.registry
        )

        # Per-window rates
        self.queries_per_second = Gauge(
            'dnsstress_queries_per_second',
            'Queries sent per second during the last window',
            registry=self.registry
        )
        self.replies_per_second = Gauge(
            'dnsstress_replies_per_second',
            'Replies received per second during the last window',
            registry=self.registry
        )

        # Latency
        self.avg_latency = Gauge(
            'dnsstress_latency_seconds_avg',
            'Mean exchange latency during the last window',
            registry=self.registry
        )
        self.max_latency = Gauge(
            'dnsstress_latency_seconds_max',
            'Max exchange latency during the last window',
            registry=self.registry
        )

    def export_window(self, report: WindowReport):
        """Export metrics for a single flush window."""
        self.queries_sent.inc(report.sent)
        self.replies_received.inc(max(report.sent - report.errors, 0))
        self.errors.inc(report.errors)
        self.bytes_sent.inc(report.bytes_sent)

        self.queries_per_second.set(report.requests_per_second)
        self.replies_per_second.set(report.replies_per_second)

        self.avg_latency.set(report.mean_latency_ms / 1000.0)
        self.max_latency.set(report.max_latency_ms / 1000.0)

    def serve(self, port: int, addr: str = '0.0.0.0'):
        """Serve the registry over HTTP for scraping."""
        start_http_server(port, addr=addr, registry=self.registry)
