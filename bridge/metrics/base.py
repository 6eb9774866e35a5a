"""
Base MetricsReporter interface for the bridge.

All report_* calls are fire-and-forget: they must be thread-safe, must not
block and return nothing.
"""

import logging
from abc import ABC, abstractmethod

from bridge.state import ConnectionState

logger = logging.getLogger(__name__)


class MetricsReporter(ABC):
    """Observability sink driven by ReconnectSupervisor."""

    @abstractmethod
    def report_state_change(self, state: ConnectionState) -> None:
        pass

    @abstractmethod
    def report_reconnect_attempt(self) -> None:
        pass

    @abstractmethod
    def report_backoff(self, seconds: float) -> None:
        pass

    @abstractmethod
    def report_sink_connected(self, connected: bool) -> None:
        """Downstream (SRT publish) connection state."""
        pass

    @abstractmethod
    def report_uptime(self, seconds: float) -> None:
        pass


class LoggingReporter(MetricsReporter):
    """Reporter that only writes DEBUG log lines."""

    def report_state_change(self, state: ConnectionState) -> None:
        logger.debug(f"metric state={state} ({state.as_metric():.0f})")

    def report_reconnect_attempt(self) -> None:
        logger.debug("metric reconnect_attempt")

    def report_backoff(self, seconds: float) -> None:
        logger.debug(f"metric backoff={seconds:.3f}s")

    def report_sink_connected(self, connected: bool) -> None:
        logger.debug(f"metric sink_connected={connected}")

    def report_uptime(self, seconds: float) -> None:
        logger.debug(f"metric uptime={seconds:.1f}s")
