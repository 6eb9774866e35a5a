"""
Connection lifecycle state machine.

Records the current ConnectionState together with an append-only history of
transitions. Any state may transition to any other; the lifecycle only keeps
the record. Not thread-safe on its own: ReconnectSupervisor serialises access.
"""

import logging
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple

from bridge.state import ConnectionState, StateKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StateTransition:
    """Single transition record (monotonic timestamp)."""
    from_state: ConnectionState
    to_state: ConnectionState
    timestamp: float
    reason: Optional[str] = None


class ConnectionLifecycle:
    def __init__(self) -> None:
        self._current_state = ConnectionState.idle()
        self._history: List[StateTransition] = []
        self._started_at: Optional[float] = None

    @property
    def current_state(self) -> ConnectionState:
        return self._current_state

    @property
    def history(self) -> Tuple[StateTransition, ...]:
        return tuple(self._history)

    @property
    def transition_count(self) -> int:
        return len(self._history)

    @property
    def last_transition(self) -> Optional[StateTransition]:
        return self._history[-1] if self._history else None

    @property
    def started_at(self) -> Optional[float]:
        """Monotonic time of the first transition into STREAMING, if any."""
        return self._started_at

    def uptime(self) -> Optional[float]:
        """Seconds since the lifecycle first reached STREAMING, or None."""
        if self._started_at is None:
            return None
        return time.monotonic() - self._started_at

    def to_connecting(self) -> None:
        self._record(ConnectionState.connecting(), None)

    def to_streaming(self) -> None:
        self._record(ConnectionState.streaming(), None)
        if self._started_at is None:
            self._started_at = time.monotonic()

    def to_reconnecting(self, attempt: int, reason: Optional[str] = None) -> None:
        self._record(ConnectionState.reconnecting(attempt), reason)

    def to_failed(self, reason: Optional[str] = None) -> None:
        self._record(ConnectionState.failed(reason), reason)

    def should_continue_retrying(self, max_failures: Optional[int] = None) -> bool:
        """
        Whether another retry is allowed under a bounded-attempt policy.

        Args:
            max_failures: Maximum consecutive failures, or None for unbounded

        Returns:
            True iff currently RECONNECTING and the attempt is below the cap.
        """
        state = self._current_state
        if state.kind is not StateKind.RECONNECTING:
            return False
        if max_failures is None:
            return True
        return state.attempt < max_failures

    def _record(self, new_state: ConnectionState, reason: Optional[str]) -> None:
        transition = StateTransition(
            from_state=self._current_state,
            to_state=new_state,
            timestamp=time.monotonic(),
            reason=reason,
        )
        self._history.append(transition)
        self._current_state = new_state
        logger.debug(f"Connection state: {transition.from_state} -> {new_state}"
                     + (f" ({reason})" if reason else ""))
