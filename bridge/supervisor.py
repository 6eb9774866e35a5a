"""
Reconnect supervisor for the RTSP to SRT bridge.

ReconnectSupervisor repeatedly drives a TransportEngine, distinguishes clean
completion from failure, and retries failures with exponential backoff until
it is told to stop. Cancellation is cooperative: stop() only clears the shared
running signal, which both the supervisor loop and the engine poll.

Loop outline:
1. running set, lifecycle -> CONNECTING
2. engine.run(running)
   - Completed: lifecycle -> CONNECTING, backoff and attempt counter reset
   - Failed:    attempt += 1, lifecycle -> RECONNECTING(attempt), sleep backoff
3. running cleared: lifecycle -> FAILED("Stopped")
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

from bridge.backoff import BackoffPolicy
from bridge.errors import ShutdownRequested, TransportError
from bridge.lifecycle import ConnectionLifecycle
from bridge.metrics.base import MetricsReporter
from bridge.state import ConnectionState, StateKind
from bridge.transport.base import Completed, Failed, RunOutcome, TransportEngine

logger = logging.getLogger(__name__)

# Backoff sleep is sliced so a stop request is observed within one slice
SLEEP_SLICE_SEC = 0.1

STOPPED_REASON = "Stopped"
STOPPED_BY_USER_REASON = "Stopped by user"


class ReconnectSupervisor:
    """
    Drives indefinite retries of a transport run.

    Collaborators are injected at construction. Lifecycle and backoff state
    are mutated from the worker thread running run_with_reconnect(); stop()
    may be called from any thread and takes the same lock for its single
    transition.
    """

    def __init__(
        self,
        transport: TransportEngine,
        backoff_policy: BackoffPolicy,
        metrics: MetricsReporter,
        max_failures: Optional[int] = None,
        sleep_slice: float = SLEEP_SLICE_SEC,
    ) -> None:
        """
        Args:
            transport: Engine performing one run attempt per call
            backoff_policy: Delay policy applied after failures
            metrics: Fire-and-forget observability sink
            max_failures: Optional cap on consecutive failures (default: unbounded)
            sleep_slice: Granularity of the interruptible backoff sleep
        """
        self._transport = transport
        self._backoff_policy = backoff_policy
        self._metrics = metrics
        self._max_failures = max_failures
        self._sleep_slice = sleep_slice

        self._lifecycle = ConnectionLifecycle()
        self._lifecycle_lock = threading.Lock()
        self._running = threading.Event()
        # Set once by stop(), never reset
        self._stop_requested = threading.Event()

    @property
    def running_flag(self) -> threading.Event:
        """Shared running signal (set = keep running). Engines poll it."""
        return self._running

    @property
    def lifecycle(self) -> ConnectionLifecycle:
        return self._lifecycle

    @property
    def current_state(self) -> ConnectionState:
        with self._lifecycle_lock:
            return self._lifecycle.current_state

    @property
    def max_failures(self) -> Optional[int]:
        return self._max_failures

    def run_with_reconnect(self) -> None:
        """
        Run the transport with automatic reconnection. Blocks until stopped.

        After an explicit stop() the final state keeps the reason "Stopped by user".
        Returns immediately if stop() was called before the loop started.
        """
        with self._lifecycle_lock:
            if self._stop_requested.is_set():
                logger.info("Stop requested before start, not running")
                return
            self._running.set()
        current_backoff = self._backoff_policy.initial_delay
        reconnect_attempt = 0

        self._transition(self._lifecycle.to_connecting)

        while self._running.is_set():
            try:
                outcome = self._run_once()
            except ShutdownRequested:
                logger.info("Transport aborted on shutdown request")
                break

            if isinstance(outcome, Completed):
                if not self._running.is_set():
                    break
                logger.info("Pipeline completed normally (EOS), reconnecting immediately...")
                self._transition(self._lifecycle.to_connecting)
                current_backoff = self._backoff_policy.initial_delay
                reconnect_attempt = 0
            else:
                logger.error(f"Pipeline error: {outcome.detail}")

                if not self._running.is_set():
                    break

                reconnect_attempt += 1
                self._metrics.report_reconnect_attempt()
                self._transition(self._lifecycle.to_reconnecting, reconnect_attempt, outcome.detail)
                self._metrics.report_backoff(current_backoff)
                self._metrics.report_sink_connected(False)

                with self._lifecycle_lock:
                    exhausted = (
                        self._max_failures is not None
                        and self._running.is_set()
                        and not self._lifecycle.should_continue_retrying(self._max_failures)
                    )
                if exhausted:
                    self._give_up(reconnect_attempt)
                    return

                logger.info(f"Reconnecting in {current_backoff:.1f}s (attempt {reconnect_attempt})...")
                self._sleep(current_backoff)
                current_backoff = self._backoff_policy.next_delay(current_backoff)

            uptime = self._lifecycle.uptime()
            if uptime is not None:
                self._metrics.report_uptime(uptime)

        logger.info("Pipeline stopped")
        with self._lifecycle_lock:
            if self._lifecycle.current_state.kind is not StateKind.FAILED:
                self._lifecycle.to_failed(STOPPED_REASON)
            final_state = self._lifecycle.current_state
        self._metrics.report_state_change(final_state)

    def stop(self) -> None:
        """Request shutdown. Thread-safe and idempotent."""
        with self._lifecycle_lock:
            self._stop_requested.set()
            self._running.clear()
            if self._lifecycle.current_state.kind is StateKind.FAILED:
                return
            self._lifecycle.to_failed(STOPPED_BY_USER_REASON)
            state = self._lifecycle.current_state
        logger.info("Stop requested")
        self._metrics.report_state_change(state)

    def _run_once(self) -> RunOutcome:
        try:
            return self._transport.run(self._running, on_streaming=self._on_streaming)
        except TransportError as e:
            return Failed(str(e))

    def _on_streaming(self) -> None:
        if not self._running.is_set():
            return
        self._transition(self._lifecycle.to_streaming)
        self._metrics.report_sink_connected(True)

    def _transition(self, change, *args) -> None:
        """Apply a lifecycle transition, then report the resulting state."""
        with self._lifecycle_lock:
            if not self._running.is_set() and self._lifecycle.current_state.kind is StateKind.FAILED:
                # stop() already recorded the terminal state
                return
            change(*args)
            state = self._lifecycle.current_state
        self._metrics.report_state_change(state)

    def _give_up(self, attempts: int) -> None:
        reason = f"Gave up after {attempts} consecutive failures"
        logger.error(reason)
        with self._lifecycle_lock:
            if self._lifecycle.current_state.kind is not StateKind.FAILED:
                self._lifecycle.to_failed(reason)
            state = self._lifecycle.current_state
        self._metrics.report_state_change(state)
        self._running.clear()

    def _sleep(self, seconds: float) -> None:
        """Sleep up to `seconds`, returning early once the running signal clears."""
        deadline = time.monotonic() + seconds
        while self._running.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(self._sleep_slice, remaining))
