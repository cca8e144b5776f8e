"""Prometheus instruments for REST dispatch and trade streaming."""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, generate_latest

registry = CollectorRegistry()

requests_counter = Counter(
    'finnhub_requests_total',
    'Total REST requests issued to the provider',
    ['kind', 'status'],
    registry=registry,
)
request_duration_histogram = Histogram(
    'finnhub_request_duration_seconds',
    'REST request latency',
    ['kind'],
    registry=registry,
)
stream_messages_counter = Counter(
    'finnhub_stream_messages_total',
    'Inbound streaming messages by type',
    ['type'],
    registry=registry,
)
stream_errors_counter = Counter(
    'finnhub_stream_errors_total',
    'Streaming errors',
    ['error_type'],
    registry=registry,
)
stream_connections_gauge = Gauge(
    'finnhub_stream_connections_active',
    'Open streaming connections',
    registry=registry,
)


def export_metrics() -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(registry)
