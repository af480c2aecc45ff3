"""Concurrent DNS load generator with periodic rate reports."""

from .models import ControlSignal, StatsDelta, StressConfig, TotalReport, WindowReport
from .query import QueryTemplate
from .worker import Worker
from .pool import WorkerPool
from .aggregator import StatsAggregator, Ticker
from .exporter import PrometheusMetricsExporter
from .utils import parse_ip_port

__all__ = [
    'ControlSignal',
    'StatsDelta',
    'StressConfig',
    'TotalReport',
    'WindowReport',
    'QueryTemplate',
    'Worker',
    'WorkerPool',
    'StatsAggregator',
    'Ticker',
    'PrometheusMetricsExporter',
    'parse_ip_port',
]
