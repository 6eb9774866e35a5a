"""
Contract tests for BridgeService wiring.

A scripted transport stands in for ffmpeg and the HTTP endpoint binds an
ephemeral port, so these tests need neither a camera nor a fixed port.
"""

import signal

import httpx
import pytest

from bridge.config import BridgeConfig
from bridge.http.server import HealthServer
from bridge.metrics.prometheus_reporter import MetricsContext
from bridge.service import BridgeService
from bridge.state import ConnectionState, StateKind
from bridge.transport.base import Completed, Failed
from bridge.transport.ffmpeg_bridge import FFmpegBridge

FAST_CONFIG = BridgeConfig(
    rtsp_url="rtsp://localhost:8554/cam1",
    srt_url="srt://localhost:9000?mode=caller",
    reconnect_initial_delay=0.01,
    reconnect_max_delay=0.04,
)


def _service(transport, config=FAST_CONFIG):
    context = MetricsContext()
    health_server = HealthServer("127.0.0.1", 0, context)
    return BridgeService(config, transport=transport, metrics_context=context, health_server=health_server)


@pytest.fixture
def restore_signals():
    previous = {sig: signal.getsignal(sig) for sig in (signal.SIGINT, signal.SIGTERM)}
    yield
    for sig, handler in previous.items():
        signal.signal(sig, handler)


@pytest.mark.timeout(30)
class TestBridgeService:

    def test_start_serves_health_and_stop_shuts_down(self, scripted_transport):
        transport = scripted_transport([])
        service = _service(transport)

        service.start()
        try:
            assert transport.blocking.wait(5.0)
            assert service.running
            with httpx.Client(timeout=2.0, trust_env=False) as client:
                response = client.get(f"http://127.0.0.1:{service.http_server.port}/health")
            assert response.status_code == 200
        finally:
            service.stop()

        assert not service.running
        assert not service.http_server.is_running
        assert service.supervisor.current_state.kind is StateKind.FAILED
        assert service.supervisor.current_state.reason == "Stopped by user"

    def test_metrics_reflect_supervisor(self, scripted_transport):
        transport = scripted_transport([Failed("camera offline")])
        service = _service(transport)

        service.start()
        try:
            assert transport.blocking.wait(5.0)
            context = service.metrics_context
            assert context.sample("reconnect_attempts_total") == 1.0
            assert context.sample("rtsp_srt_connection_state") == 3.0
            assert context.sample("reconnect_backoff_seconds") == 0.01

            with httpx.Client(timeout=2.0, trust_env=False) as client:
                body = client.get(f"http://127.0.0.1:{service.http_server.port}/metrics").text
            assert "reconnect_attempts_total 1.0" in body
        finally:
            service.stop()

        assert service.metrics_context.sample("rtsp_srt_connection_state") == 4.0

    def test_start_is_idempotent(self, scripted_transport):
        transport = scripted_transport([])
        service = _service(transport)

        service.start()
        try:
            assert transport.blocking.wait(5.0)
            service.start()
            assert transport.calls == 1
        finally:
            service.stop()

    def test_worker_exits_when_retry_cap_reached(self, scripted_transport):
        transport = scripted_transport([Failed("down")] * 5)
        config = FAST_CONFIG.with_overrides(max_failures=2)
        service = _service(transport, config)

        service.start()
        try:
            assert service.wait(timeout=5.0)
        finally:
            service.stop()

        assert transport.calls == 2
        assert service.supervisor.current_state.reason == "Gave up after 2 consecutive failures"

    def test_stop_immediately_after_start(self, scripted_transport):
        transport = scripted_transport([])
        service = _service(transport)

        service.start()
        service.stop(timeout=5.0)

        assert service.wait(timeout=0)
        assert not service.running
        assert service.supervisor.current_state == ConnectionState.failed("Stopped by user")

    def test_stop_without_start(self, scripted_transport):
        service = _service(scripted_transport([]))
        service.stop()
        assert service.wait(timeout=0)
        assert service.supervisor.current_state.kind is StateKind.FAILED

    def test_run_forever_returns_after_supervisor_exit(self, scripted_transport, restore_signals):
        transport = scripted_transport([Completed(), Failed("a"), Failed("b")])
        config = FAST_CONFIG.with_overrides(max_failures=2)
        service = _service(transport, config)

        service.run_forever()

        assert transport.calls == 3
        assert not service.http_server.is_running
        assert service.supervisor.current_state.kind is StateKind.FAILED

    def test_default_transport_is_ffmpeg(self):
        config = FAST_CONFIG.with_overrides(ffmpeg_bin="/usr/local/bin/ffmpeg", rtsp_latency_ms=500)
        context = MetricsContext()
        health_server = HealthServer("127.0.0.1", 0, context)
        try:
            service = BridgeService(config, metrics_context=context, health_server=health_server)

            assert isinstance(service.transport, FFmpegBridge)
            assert service.transport.command[0] == "/usr/local/bin/ffmpeg"
            assert "500000" in service.transport.command
            assert service.transport.config() == config.to_endpoints()
        finally:
            health_server.stop()
