"""
Base TransportEngine interface for the bridge.

A transport engine performs one run attempt (source -> sink) and reports how
it ended. It must poll the shared `running` event at a bounded interval
(<= 200ms) and return promptly once the event is cleared.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional, Union

from bridge.transport.endpoints import StreamEndpoints


@dataclass(frozen=True)
class Completed:
    """Clean end-of-stream (or the run was stopped by the running signal)."""


@dataclass(frozen=True)
class Failed:
    """Run attempt failed; `detail` is a human-readable reason."""
    detail: str


RunOutcome = Union[Completed, Failed]

StreamingCallback = Callable[[], None]


class TransportEngine(ABC):
    """
    Base class for transport engines.

    Engines are driven exclusively by ReconnectSupervisor from its worker
    thread. `on_streaming`, when given, must be invoked from within run() (on
    the calling thread) once media is flowing.
    """

    @abstractmethod
    def run(
        self,
        running: threading.Event,
        on_streaming: Optional[StreamingCallback] = None,
    ) -> RunOutcome:
        """
        Perform one run attempt.

        Args:
            running: Shared signal; set while the bridge should keep running
            on_streaming: Optional callback invoked once media starts flowing

        Returns:
            Completed() or Failed(detail)

        Raises:
            TransportError: May be raised instead of returning Failed
            ShutdownRequested: The attempt was aborted by the running signal
        """
        pass

    @abstractmethod
    def config(self) -> StreamEndpoints:
        """Immutable connection parameters of this engine."""
        pass
