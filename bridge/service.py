# bridge/service.py

import logging
import signal
import threading
from typing import Optional

from bridge.config import BridgeConfig
from bridge.http.server import HealthServer
from bridge.metrics.prometheus_reporter import MetricsContext, PrometheusReporter
from bridge.supervisor import ReconnectSupervisor
from bridge.transport.base import TransportEngine
from bridge.transport.ffmpeg_bridge import FFmpegBridge

logger = logging.getLogger(__name__)


class BridgeService:
    def __init__(
        self,
        config: BridgeConfig,
        transport: Optional[TransportEngine] = None,
        metrics_context: Optional[MetricsContext] = None,
        health_server: Optional[HealthServer] = None,
    ):
        """
        Initialize BridgeService.

        Args:
            config: Validated bridge configuration
            transport: Optional engine (default: FFmpegBridge built from config)
            metrics_context: Optional metrics registry (default: a fresh MetricsContext)
            health_server: Optional HTTP endpoint (default: bound to config.metrics_host/port)

        Raises:
            ConfigurationError: If endpoints or backoff parameters are invalid
        """
        self.config = config
        endpoints = config.to_endpoints()
        backoff_policy = config.to_backoff_policy()

        self.metrics_context = metrics_context or MetricsContext()
        self.metrics = PrometheusReporter(self.metrics_context)

        self.transport = transport or FFmpegBridge(
            endpoints,
            ffmpeg_bin=config.ffmpeg_bin,
            latency_ms=config.rtsp_latency_ms,
        )

        self.supervisor = ReconnectSupervisor(
            transport=self.transport,
            backoff_policy=backoff_policy,
            metrics=self.metrics,
            max_failures=config.max_failures,
        )

        self.http_server = health_server or HealthServer(
            host=config.metrics_host,
            port=config.metrics_port,
            metrics_context=self.metrics_context,
        )

        self._worker: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self.running = False

    def start(self) -> None:
        """Start the HTTP endpoint and the supervisor worker thread."""
        with self._lock:
            if self._worker is not None:
                return
            endpoints = self.transport.config()
            logger.info("=== Bridge starting ===")
            logger.info(f"  RTSP source: {endpoints.rtsp_url}")
            logger.info(f"  SRT destination: {endpoints.srt_url}")
            logger.info(f"  Metrics port: {self.http_server.port}")

            self.http_server.start()

            self._worker = threading.Thread(
                target=self._run_supervisor,
                daemon=False,
                name="BridgeSupervisor",
            )
            self._worker.start()
            self.running = True

    def _run_supervisor(self) -> None:
        try:
            self.supervisor.run_with_reconnect()
        except Exception as e:
            logger.error(f"Supervisor crashed: {e}", exc_info=True)
            raise
        finally:
            self.running = False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the supervisor worker exits. Returns True if it has."""
        worker = self._worker
        if worker is None:
            return True
        worker.join(timeout=timeout)
        return not worker.is_alive()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop supervisor and HTTP endpoint. Idempotent."""
        logger.info("Stopping bridge...")
        self.supervisor.stop()
        if not self.wait(timeout=timeout):
            logger.warning("Supervisor thread did not terminate within timeout")
        self.http_server.stop()
        self.running = False
        logger.info("Bridge stopped")

    def run_forever(self) -> None:
        """
        Start, then block until the supervisor exits.

        SIGINT/SIGTERM only request a stop; the supervisor winds down
        cooperatively and this method then stops the HTTP endpoint.
        """
        def _request_stop(signum, frame):
            logger.info(f"Received signal {signal.Signals(signum).name}, shutting down")
            self.supervisor.stop()

        signal.signal(signal.SIGINT, _request_stop)
        signal.signal(signal.SIGTERM, _request_stop)

        self.start()
        # Short join slices keep the main thread responsive to signals
        while not self.wait(timeout=0.5):
            pass
        self.http_server.stop()
        logger.info("Pipeline shutdown complete")
