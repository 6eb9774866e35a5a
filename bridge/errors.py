"""
Error taxonomy for the RTSP to SRT bridge.

ConfigurationError is raised before the reconnect loop starts and is never
retried. TransportError describes a failed run attempt and is always retried by
the supervisor. ShutdownRequested is not a failure: it ends the loop cleanly.
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigurationError(BridgeError, ValueError):
    """Invalid configuration parameters (fail fast, non-retryable)."""


class InvalidMultiplier(ConfigurationError):
    """Backoff multiplier must be strictly greater than 1.0."""

    def __init__(self, multiplier: float):
        self.multiplier = multiplier
        super().__init__(f"Invalid backoff multiplier: {multiplier} (must be > 1.0)")


class InvalidBackoffBounds(ConfigurationError):
    """Backoff delays are non-positive or max_delay < initial_delay."""


class InvalidUrl(ConfigurationError):
    """Source or destination URL has the wrong scheme."""


class InvalidPort(ConfigurationError):
    """Port is zero, privileged or out of range."""


class TransportError(BridgeError):
    """A transport run attempt failed."""

    def __init__(self, detail: str, exit_code: Optional[int] = None):
        self.detail = detail
        self.exit_code = exit_code
        super().__init__(detail)


class PipelineCreationFailed(TransportError):
    """The transport could not be launched."""

    def __init__(self, detail: str):
        super().__init__(f"Pipeline creation failed: {detail}")


class PipelineExecutionFailed(TransportError):
    """The transport started but terminated with an error."""

    def __init__(self, detail: str, exit_code: Optional[int] = None):
        super().__init__(f"Pipeline execution failed: {detail}", exit_code=exit_code)


class ShutdownRequested(BridgeError):
    """Raised by a transport that aborted because shutdown was requested."""
