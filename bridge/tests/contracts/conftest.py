"""
Shared pytest fixtures for bridge contract tests.
"""
import threading
import time
from typing import Callable, List, Optional, Union
from unittest.mock import Mock

import pytest

from bridge.backoff import BackoffPolicy
from bridge.metrics.base import MetricsReporter
from bridge.transport.base import Completed, RunOutcome, TransportEngine
from bridge.transport.endpoints import StreamEndpoints

RTSP_URL = "rtsp://localhost:8554/cam1"
SRT_URL = "srt://localhost:9000?mode=caller"


class ScriptedTransport(TransportEngine):
    """
    Transport double that replays a script of outcomes.

    Each step is a RunOutcome, an exception to raise, or the string "block"
    (wait until the running signal is cleared, then return Completed()).
    When the script is exhausted every further run blocks.
    """

    def __init__(self, steps: Optional[List[Union[RunOutcome, Exception, str]]] = None,
                 stream_on_step: Optional[int] = None):
        self._steps = list(steps or [])
        self._stream_on_step = stream_on_step
        self.calls = 0
        self.call_event = threading.Event()
        self.blocking = threading.Event()
        self.endpoints = StreamEndpoints(RTSP_URL, SRT_URL)

    def run(self, running: threading.Event,
            on_streaming: Optional[Callable[[], None]] = None) -> RunOutcome:
        step_index = self.calls
        self.calls += 1
        self.call_event.set()
        if self._stream_on_step == step_index and on_streaming is not None:
            on_streaming()
        step = self._steps[step_index] if step_index < len(self._steps) else "block"
        if isinstance(step, Exception):
            raise step
        if step == "block":
            self.blocking.set()
            while running.is_set():
                time.sleep(0.005)
            return Completed()
        return step

    def config(self) -> StreamEndpoints:
        return self.endpoints


@pytest.fixture
def fast_policy():
    """Backoff policy with tiny delays so retry loops finish quickly."""
    return BackoffPolicy(initial_delay=0.01, max_delay=0.04, multiplier=2.0)


@pytest.fixture
def metrics():
    """Mock metrics sink recording every call in order."""
    return Mock(spec=MetricsReporter)


@pytest.fixture
def scripted_transport():
    return ScriptedTransport


@pytest.fixture(autouse=False)  # Set to True to enable automatic thread leak detection
def thread_leak_guard():
    """
    Optional fixture to detect thread leaks between tests.

    This ensures shutdown contracts are actually respected across tests.
    Enable by setting autouse=True or request it explicitly in tests.
    """
    before = set(t.ident for t in threading.enumerate())
    yield
    after = set(t.ident for t in threading.enumerate())
    leaked = after - before
    if leaked:
        leaked_threads = [t for t in threading.enumerate() if t.ident in leaked]
        thread_info = '\n'.join(f"  - {t.name} (daemon={t.daemon})" for t in leaked_threads)
        assert False, f"Thread leak detected: shutdown incomplete.\nLeaked threads:\n{thread_info}"
