"""
Configuration management for the RTSP to SRT bridge.

Reads configuration from an optional .env file and environment variables with
sensible defaults. Command-line overrides are applied by bridge.__main__.
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from bridge.backoff import BackoffPolicy
from bridge.errors import ConfigurationError, InvalidPort
from bridge.transport.command import DEFAULT_FFMPEG_BIN, DEFAULT_RTSP_LATENCY_MS
from bridge.transport.endpoints import RTSP_SCHEME, SRT_SCHEME, StreamEndpoints

# Default .env file location
DEFAULT_ENV_FILE = Path("/etc/bridge/bridge.env")

# Ports below 1024 are privileged
MIN_USER_PORT = 1024
MAX_PORT = 65535

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

logger = logging.getLogger(__name__)


def _load_env_file() -> None:
    """Load environment variables from .env file if it exists."""
    env_file = os.getenv("BRIDGE_ENV_FILE", str(DEFAULT_ENV_FILE))
    env_path = Path(env_file)

    if env_path.exists():
        load_dotenv(env_path, override=False)  # Don't override existing env vars
        logger.debug(f"Loaded environment file {env_path}")


def _parse_int(name: str, default: str) -> int:
    value = os.getenv(name, default)
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: {value} (must be an integer)")


def _parse_float(name: str, default: str) -> float:
    value = os.getenv(name, default)
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: {value} (must be a number)")


def _parse_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "")
    if value.strip() == "":
        return None
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid {name}: {value} (must be an integer)")


@dataclass(frozen=True)
class BridgeConfig:
    """Bridge configuration loaded from .env file and environment variables."""

    # Endpoints
    rtsp_url: str = "rtsp://pipeline-rtsp:8554/cam1"
    srt_url: str = "srt://mediamtx:9000?mode=caller&streamid=publish:cam1&latency=200"

    # Metrics / health endpoint
    metrics_host: str = "0.0.0.0"
    metrics_port: int = 9002

    # Reconnection (seconds)
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    reconnect_multiplier: float = 2.0
    max_failures: Optional[int] = None  # None = retry forever

    # Transport
    rtsp_latency_ms: int = DEFAULT_RTSP_LATENCY_MS
    ffmpeg_bin: str = DEFAULT_FFMPEG_BIN

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @classmethod
    def load_config(cls) -> "BridgeConfig":
        """
        Load configuration from environment variables.

        Returns:
            BridgeConfig instance with loaded values

        Raises:
            ConfigurationError: If configuration is invalid
        """
        # Load .env file first (if it exists)
        _load_env_file()

        log_file = os.getenv("BRIDGE_LOG_FILE")
        if log_file == "":
            log_file = None

        config = cls(
            rtsp_url=os.getenv("RTSP_URL", cls.rtsp_url),
            srt_url=os.getenv("SRT_URL", cls.srt_url),
            metrics_host=os.getenv("METRICS_HOST", cls.metrics_host),
            metrics_port=_parse_int("METRICS_PORT", "9002"),
            reconnect_initial_delay=_parse_float("RECONNECT_INITIAL_DELAY", "1"),
            reconnect_max_delay=_parse_float("RECONNECT_MAX_DELAY", "30"),
            reconnect_multiplier=_parse_float("RECONNECT_MULTIPLIER", "2.0"),
            max_failures=_parse_optional_int("RECONNECT_MAX_FAILURES"),
            rtsp_latency_ms=_parse_int("RTSP_LATENCY_MS", str(DEFAULT_RTSP_LATENCY_MS)),
            ffmpeg_bin=os.getenv("FFMPEG_BIN", DEFAULT_FFMPEG_BIN),
            log_level=os.getenv("BRIDGE_LOG_LEVEL", "INFO").upper(),
            log_file=log_file,
        )

        config.validate()

        return config

    def with_overrides(self, **overrides) -> "BridgeConfig":
        """Return a validated copy with non-None overrides applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        config = replace(self, **values)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.rtsp_url.startswith(RTSP_SCHEME):
            raise ConfigurationError(f"RTSP URL must start with {RTSP_SCHEME}: {self.rtsp_url}")

        if not self.srt_url.startswith(SRT_SCHEME):
            raise ConfigurationError(f"SRT URL must start with {SRT_SCHEME}: {self.srt_url}")

        self._validate_port(self.metrics_port, "metrics")

        if not self.reconnect_multiplier > 1.0:
            raise ConfigurationError(
                f"Reconnect multiplier must be > 1.0 (got {self.reconnect_multiplier})"
            )

        if self.reconnect_initial_delay <= 0:
            raise ConfigurationError("Initial reconnection delay must be > 0")

        if self.reconnect_max_delay < self.reconnect_initial_delay:
            raise ConfigurationError(
                f"Maximum reconnection delay ({self.reconnect_max_delay}) cannot be less "
                f"than initial delay ({self.reconnect_initial_delay})"
            )

        if self.max_failures is not None and self.max_failures < 1:
            raise ConfigurationError(f"Invalid max failures: {self.max_failures} (must be >= 1)")

        if self.rtsp_latency_ms < 0:
            raise ConfigurationError(f"Invalid RTSP latency: {self.rtsp_latency_ms} (must be >= 0)")

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"Invalid log level: {self.log_level} "
                f"(must be one of: {', '.join(VALID_LOG_LEVELS)})"
            )

    @staticmethod
    def _validate_port(port: int, name: str) -> None:
        if port == 0:
            raise InvalidPort(f"Invalid {name} port: port cannot be 0")
        if port < MIN_USER_PORT:
            raise InvalidPort(
                f"Invalid {name} port: {port} is a privileged port (< {MIN_USER_PORT}). "
                f"Use a port >= {MIN_USER_PORT}"
            )
        if port > MAX_PORT:
            raise InvalidPort(f"Invalid {name} port: {port} (must be <= {MAX_PORT})")

    def to_endpoints(self) -> StreamEndpoints:
        return StreamEndpoints(rtsp_url=self.rtsp_url, srt_url=self.srt_url)

    def to_backoff_policy(self) -> BackoffPolicy:
        return BackoffPolicy(
            initial_delay=self.reconnect_initial_delay,
            max_delay=self.reconnect_max_delay,
            multiplier=self.reconnect_multiplier,
        )

