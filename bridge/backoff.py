"""
Exponential backoff policy for reconnection attempts.

All delays are expressed in seconds (float). The policy itself holds no
mutable state: callers keep the current delay and ask for the next one.
"""

from dataclasses import dataclass
from typing import Iterator

from bridge.errors import InvalidBackoffBounds, InvalidMultiplier

DEFAULT_INITIAL_DELAY_SEC = 1.0
DEFAULT_MAX_DELAY_SEC = 30.0
DEFAULT_MULTIPLIER = 2.0


@dataclass(frozen=True)
class BackoffPolicy:
    """
    Backoff configuration for reconnection attempts.

    next_delay(current) = min(current * multiplier, max_delay)

    Raises:
        InvalidMultiplier: multiplier <= 1.0
        InvalidBackoffBounds: initial_delay <= 0 or max_delay < initial_delay
    """

    initial_delay: float = DEFAULT_INITIAL_DELAY_SEC
    max_delay: float = DEFAULT_MAX_DELAY_SEC
    multiplier: float = DEFAULT_MULTIPLIER

    def __post_init__(self) -> None:
        if not self.multiplier > 1.0:
            raise InvalidMultiplier(self.multiplier)
        if self.initial_delay <= 0:
            raise InvalidBackoffBounds(
                f"Initial backoff delay must be > 0 (got {self.initial_delay})"
            )
        if self.max_delay < self.initial_delay:
            raise InvalidBackoffBounds(
                f"Maximum backoff delay ({self.max_delay}) cannot be less than "
                f"initial delay ({self.initial_delay})"
            )

    @classmethod
    def default(cls) -> "BackoffPolicy":
        return cls()

    def next_delay(self, current: float) -> float:
        """Calculate the delay that follows `current`, capped at max_delay."""
        return min(current * self.multiplier, self.max_delay)

    def delays(self) -> Iterator[float]:
        """Yield the infinite delay sequence starting at initial_delay."""
        delay = self.initial_delay
        while True:
            yield delay
            delay = self.next_delay(delay)
