"""Client for pushing load generator windows via Prometheus remote write."""

import sys
from typing import Any, Dict, List, Optional
from datetime import datetime

import requests
import snappy
from google.protobuf.json_format import MessageToJson

from prometheus_remote_writer.proto import remote_pb2 as prompb_pb2
from prometheus_remote_writer.proto import types_pb2

from .models import WindowReport


class RemoteWriteClient:
    """Client for sending Prometheus metrics via remote write."""

    def __init__(self, remote_write_url: str, headers: Optional[Dict[str, str]] = None,
                 instance_label: str = 'dnsstress', verbose: bool = False):
        self.remote_write_url = remote_write_url
        self.headers = headers or {}
        self.headers.setdefault('Content-Type', 'application/x-protobuf')
        self.headers.setdefault('Content-Encoding', 'snappy')
        self.headers.setdefault('X-Prometheus-Remote-Write-Version', '0.1.0')
        self.instance_label = instance_label
        self.verbose = verbose

    def send_metrics_from_windows(self, windows: List[WindowReport], dry_run: bool = False,
                                  debug_file: Optional[str] = None,
                                  run_labels: Optional[Dict[str, str]] = None) -> bool:
        """Send the flushed windows to the remote write endpoint.

        Args:
            windows: Window reports, in flush order
            dry_run: If True, build the payload but skip sending it
            debug_file: Optional path to save the uncompressed payload as JSON
            run_labels: Optional run parameters attached to the dnsstress_info metric

        Returns:
            True if successful, False otherwise
        """
        try:
            if windows:
                print(f"Processing {len(windows)} windows", file=sys.stderr)
                print(f"  First window: timestamp={windows[0].timestamp}", file=sys.stderr)
                print(f"  Last window: timestamp={windows[-1].timestamp}", file=sys.stderr)

            write_request = self.convert_windows_to_remote_write(windows, run_labels=run_labels)

            num_timeseries = len(write_request.timeseries)
            total_samples = sum(len(ts.samples) for ts in write_request.timeseries)
            print(f"Prepared {num_timeseries} time series with {total_samples} total samples", file=sys.stderr)

            data = write_request.SerializeToString()

            if debug_file:
                self._write_debug_file(write_request, debug_file)

            if dry_run:
                print("Dry-run mode: Skipping actual send to endpoint", file=sys.stderr)
                return True

            compressed_data = snappy.compress(data)
            print(f"Sending {len(compressed_data)} bytes (uncompressed: {len(data)} bytes)", file=sys.stderr)

            current_time = datetime.now()
            response = requests.post(
                self.remote_write_url,
                data=compressed_data,
                headers=self.headers,
                timeout=30
            )

            if response.status_code in (200, 204):
                print(f"Successfully sent metrics (status {response.status_code}) at {current_time.isoformat()}", file=sys.stderr)
                return True
            print(f"Error sending metrics: {response.status_code} - {response.text}", file=sys.stderr)
            return False
        except requests.exceptions.ConnectionError:
            print(f"Connection error: Could not connect to {self.remote_write_url}", file=sys.stderr)
            print("  Make sure Prometheus is running and the remote write receiver is enabled", file=sys.stderr)
            return False
        except requests.exceptions.RequestException as e:
            print(f"Error in remote write: {e}", file=sys.stderr)
            return False

    def _write_debug_file(self, write_request, debug_file: str):
        try:
            json_data = MessageToJson(write_request, always_print_fields_with_no_presence=True)  # type: ignore[call-arg]
        except TypeError:
            # protobuf releases before 26.x use the old parameter name
            json_data = MessageToJson(write_request, including_default_value_fields=True)  # type: ignore[call-arg]
        try:
            with open(debug_file, 'w', encoding='utf-8') as f:
                f.write(json_data)
        except OSError as e:
            print(f"Warning: Failed to write debug file {debug_file}: {e}", file=sys.stderr)
            return
        print(f"Saved uncompressed payload as JSON ({len(json_data)} bytes) to {debug_file}", file=sys.stderr)

    def convert_windows_to_remote_write(self, windows: List[WindowReport],
                                        run_labels: Optional[Dict[str, str]] = None):
        """Convert window reports to a remote write request.

        Counters are sent as running totals, rates and latencies as the
        window's own value, each sample stamped with the window's flush time.
        """
        write_request = prompb_pb2.WriteRequest()  # type: ignore
        time_series_map: Dict[tuple, Any] = {}

        if not windows:
            return write_request

        if run_labels:
            first_timestamp_ms = int(windows[0].timestamp.timestamp() * 1000)
            self._add_sample_to_map(time_series_map, 'dnsstress_info', dict(run_labels), 1.0, first_timestamp_ms)

        cumulative_sent = 0
        cumulative_replies = 0
        cumulative_errors = 0
        cumulative_bytes = 0

        for window in windows:
            timestamp_ms = int(window.timestamp.timestamp() * 1000)

            cumulative_sent += window.sent
            cumulative_replies += max(window.sent - window.errors, 0)
            cumulative_errors += window.errors
            cumulative_bytes += window.bytes_sent

            self._add_sample_to_map(time_series_map, 'dnsstress_queries_sent_total', {}, cumulative_sent, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'dnsstress_replies_received_total', {}, cumulative_replies, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'dnsstress_errors_total', {}, cumulative_errors, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'dnsstress_bytes_sent_total', {}, cumulative_bytes, timestamp_ms)

            self._add_sample_to_map(time_series_map, 'dnsstress_queries_per_second', {}, window.requests_per_second, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'dnsstress_replies_per_second', {}, window.replies_per_second, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'dnsstress_latency_seconds_avg', {}, window.mean_latency_ms / 1000.0, timestamp_ms)
            self._add_sample_to_map(time_series_map, 'dnsstress_latency_seconds_max', {}, window.max_latency_ms / 1000.0, timestamp_ms)

        for time_series in time_series_map.values():
            if len(time_series.samples) > 0:
                new_ts = write_request.timeseries.add()
                new_ts.CopyFrom(time_series)

        return write_request

    def _print_metric_sample(self, time_series, timestamp_ms: int, value: float) -> None:
        """Print a single metric sample in verbose mode."""
        metric_name = None
        labels = {}
        for label in time_series.labels:
            if label.name == '__name__':
                metric_name = label.value
            else:
                labels[label.name] = label.value

        label_str = ','.join(f'{k}="{v}"' for k, v in sorted(labels.items()))
        timestamp_dt = datetime.fromtimestamp(timestamp_ms / 1000.0)
        print(f"{timestamp_dt.isoformat()} {metric_name}{{{label_str}}} {value}")

    def _add_sample_to_map(self, time_series_map: Dict[tuple, Any], metric_name: str, labels: Dict[str, str],
                           value: float, timestamp_ms: int):
        """Add a sample to the time series map, grouping by metric name and labels."""
        labels_with_instance = labels.copy()
        labels_with_instance['instance'] = self.instance_label

        key = (metric_name, tuple(sorted(labels_with_instance.items())))

        if key not in time_series_map:
            time_series = types_pb2.TimeSeries()  # type: ignore

            label = time_series.labels.add()
            label.name = '__name__'
            label.value = metric_name

            for key_name, val in sorted(labels_with_instance.items()):
                label = time_series.labels.add()
                label.name = key_name
                label.value = str(val)

            time_series_map[key] = time_series

        # _info metrics carry a single sample
        if metric_name.endswith('_info') and len(time_series_map[key].samples) > 0:
            return

        sample = time_series_map[key].samples.add()
        sample.value = value
        sample.timestamp = timestamp_ms

        if self.verbose:
            self._print_metric_sample(time_series_map[key], timestamp_ms, value)
