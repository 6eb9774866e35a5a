"""
Connection states for the bridge.

A ConnectionState is an immutable value: Idle, Connecting, Streaming,
Reconnecting (with attempt number) or Failed (with optional reason).
"""

import enum
from dataclasses import dataclass
from typing import Optional


class StateKind(enum.Enum):
    """State discriminator. Values double as the exported gauge value."""
    IDLE = 0
    CONNECTING = 1
    STREAMING = 2
    RECONNECTING = 3
    FAILED = 4


@dataclass(frozen=True)
class ConnectionState:
    kind: StateKind = StateKind.IDLE
    attempt: int = 0  # only meaningful for RECONNECTING
    reason: Optional[str] = None  # only meaningful for FAILED

    @classmethod
    def idle(cls) -> "ConnectionState":
        return cls(StateKind.IDLE)

    @classmethod
    def connecting(cls) -> "ConnectionState":
        return cls(StateKind.CONNECTING)

    @classmethod
    def streaming(cls) -> "ConnectionState":
        return cls(StateKind.STREAMING)

    @classmethod
    def reconnecting(cls, attempt: int) -> "ConnectionState":
        return cls(StateKind.RECONNECTING, attempt=attempt)

    @classmethod
    def failed(cls, reason: Optional[str] = None) -> "ConnectionState":
        return cls(StateKind.FAILED, reason=reason)

    def as_metric(self) -> float:
        """Numeric value for the connection state gauge."""
        return float(self.kind.value)

    def is_streaming(self) -> bool:
        return self.kind is StateKind.STREAMING

    def is_problematic(self) -> bool:
        """Reconnecting or Failed."""
        return self.kind in (StateKind.RECONNECTING, StateKind.FAILED)

    def __str__(self) -> str:
        if self.kind is StateKind.RECONNECTING:
            return f"RECONNECTING (attempt {self.attempt})"
        return self.kind.name
