"""
Prometheus metrics for the bridge.

MetricsContext owns its own CollectorRegistry, so every service instance (and
every test) gets isolated instruments instead of sharing process-wide globals.
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, generate_latest
from prometheus_client.exposition import CONTENT_TYPE_LATEST

from bridge.metrics.base import MetricsReporter
from bridge.state import ConnectionState


class MetricsContext:
    """Registry plus the bridge instruments."""

    content_type = CONTENT_TYPE_LATEST

    def __init__(self) -> None:
        self.registry = CollectorRegistry(auto_describe=True)

        # 0=Idle, 1=Connecting, 2=Streaming, 3=Reconnecting, 4=Failed
        self.connection_state = Gauge(
            "rtsp_srt_connection_state",
            "Current connection state",
            registry=self.registry,
        )
        self.reconnect_attempts = Counter(
            "reconnect_attempts",
            "Total number of reconnection attempts",
            registry=self.registry,
        )
        self.backoff_seconds = Gauge(
            "reconnect_backoff_seconds",
            "Current reconnection backoff delay",
            registry=self.registry,
        )
        self.uptime_seconds = Gauge(
            "pipeline_uptime_seconds",
            "Time since pipeline started streaming",
            registry=self.registry,
        )
        self.srt_publish_state = Gauge(
            "srt_publish_state",
            "SRT publish connection state",
            registry=self.registry,
        )

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)

    def sample(self, name: str) -> float:
        """Current value of a sample by full name (0.0 if absent)."""
        value = self.registry.get_sample_value(name)
        return 0.0 if value is None else value


class PrometheusReporter(MetricsReporter):
    def __init__(self, context: MetricsContext) -> None:
        self._context = context

    @property
    def context(self) -> MetricsContext:
        return self._context

    def report_state_change(self, state: ConnectionState) -> None:
        self._context.connection_state.set(state.as_metric())

    def report_reconnect_attempt(self) -> None:
        self._context.reconnect_attempts.inc()

    def report_backoff(self, seconds: float) -> None:
        self._context.backoff_seconds.set(seconds)

    def report_sink_connected(self, connected: bool) -> None:
        self._context.srt_publish_state.set(1 if connected else 0)

    def report_uptime(self, seconds: float) -> None:
        self._context.uptime_seconds.set(seconds)
