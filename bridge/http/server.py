"""
HTTP health and metrics endpoint for the bridge.

Serves:
- GET /health   -> 200 "OK"
- GET /metrics  -> Prometheus text exposition of the service's MetricsContext

The server only reads the metrics registry; it shares no other state with the
reconnect supervisor.
"""

import logging
import socketserver
import threading
from http.server import BaseHTTPRequestHandler
from typing import Optional

from bridge.metrics.prometheus_reporter import MetricsContext

logger = logging.getLogger(__name__)


class MetricsRequestHandler(BaseHTTPRequestHandler):
    """Request handler for /health and /metrics."""

    metrics_context: Optional[MetricsContext] = None

    def do_GET(self):
        path = self.path.split("?", 1)[0]
        if path == "/health":
            self._send_body(200, b"OK", "text/plain; charset=utf-8")
        elif path == "/metrics":
            self._handle_metrics()
        else:
            self._send_body(404, b"Not Found", "text/plain; charset=utf-8")

    def do_OPTIONS(self):
        """CORS preflight."""
        self.send_response(204)
        self._send_cors_headers()
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _handle_metrics(self):
        context = self.metrics_context
        if context is None:
            self._send_body(503, b"Service Unavailable", "text/plain; charset=utf-8")
            return
        try:
            body = context.render()
        except Exception as e:
            logger.error(f"Failed to encode metrics: {e}", exc_info=True)
            body = b"# Error encoding metrics\n"
        self._send_body(200, body, context.content_type)

    def _send_body(self, status: int, body: bytes, content_type: str):
        self.send_response(status)
        self._send_cors_headers()
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.send_header("Cache-Control", "no-cache")
        self.end_headers()
        try:
            self.wfile.write(body)
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(f"Client went away before response was written: {e}")

    def _send_cors_headers(self):
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")

    def log_message(self, format, *args):
        """Override to use our logger instead of stderr."""
        logger.debug(f"{self.address_string()} - {format % args}")


class ThreadingHTTPServer(socketserver.ThreadingMixIn, socketserver.TCPServer):
    """
    Threaded HTTP server for handling multiple concurrent connections.

    Uses ThreadingMixIn to handle each request in a separate thread.
    """
    allow_reuse_address = True
    daemon_threads = True


def create_handler_class(metrics_context: MetricsContext):
    """Create a handler class with the metrics context bound."""
    class Handler(MetricsRequestHandler):
        pass

    Handler.metrics_context = metrics_context
    return Handler


class HealthServer:
    """Health/metrics HTTP server running on a daemon thread."""

    def __init__(self, host: str, port: int, metrics_context: MetricsContext):
        """
        Args:
            host: Bind address
            port: Bind port (0 picks a free port)
            metrics_context: Registry to expose on /metrics
        """
        self.host = host
        self.metrics_context = metrics_context
        self._server = ThreadingHTTPServer((host, port), create_handler_class(metrics_context))
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def port(self) -> int:
        """Bound port (resolved when constructed with port 0)."""
        return self._server.server_address[1]

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._server.serve_forever,
                kwargs={"poll_interval": 0.1},
                daemon=True,
                name="MetricsHTTPServer",
            )
            self._thread.start()
        logger.info(f"Metrics server listening on http://{self.host}:{self.port}")

    def stop(self) -> None:
        """Stop serving and close the listening socket. Idempotent."""
        with self._lock:
            thread = self._thread
            self._thread = None
            if thread is not None:
                self._server.shutdown()
                thread.join(timeout=2.0)
            self._server.server_close()
        if thread is not None:
            logger.info("Metrics server stopped")
