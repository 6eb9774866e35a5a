#!/usr/bin/env python3
"""
Bridge main entry point.

Allows the bridge to be run as a module: python3 -m bridge

Exit codes:
    0  clean shutdown (signal or stop)
    1  unexpected error, or retry cap reached
    2  invalid configuration
"""

import argparse
import logging
import logging.handlers
import sys
from typing import List, Optional

from bridge.config import BridgeConfig
from bridge.errors import ConfigurationError
from bridge.service import BridgeService
from bridge.supervisor import STOPPED_BY_USER_REASON, STOPPED_REASON

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("bridge")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bridge",
        description="RTSP to SRT bridge with automatic reconnection",
    )
    parser.add_argument("--rtsp-url", help="RTSP source URL (env: RTSP_URL)")
    parser.add_argument("--srt-url", help="SRT destination URL (env: SRT_URL)")
    parser.add_argument("--metrics-port", type=int, help="Metrics server port (env: METRICS_PORT)")
    parser.add_argument(
        "--reconnect-initial-delay", type=float,
        help="Initial reconnection delay in seconds",
    )
    parser.add_argument(
        "--reconnect-max-delay", type=float,
        help="Maximum reconnection delay in seconds",
    )
    parser.add_argument(
        "--reconnect-multiplier", type=float,
        help="Reconnection backoff multiplier (must be > 1.0)",
    )
    parser.add_argument(
        "--max-failures", type=int,
        help="Give up after this many consecutive failures (default: retry forever)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    """
    Configure root logging: console always, plus an optional log file.

    The file handler is rotation-tolerant (WatchedFileHandler) and write
    failures never propagate into the bridge.
    """
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        try:
            file_handler = logging.handlers.WatchedFileHandler(log_file, mode="a")
        except OSError as e:
            print(f"Cannot open log file {log_file}: {e}", file=sys.stderr)
        else:
            original_emit = file_handler.emit

            def safe_emit(record):
                try:
                    original_emit(record)
                except OSError:
                    pass

            file_handler.emit = safe_emit
            handlers.append(file_handler)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = BridgeConfig.load_config().with_overrides(
            rtsp_url=args.rtsp_url,
            srt_url=args.srt_url,
            metrics_port=args.metrics_port,
            reconnect_initial_delay=args.reconnect_initial_delay,
            reconnect_max_delay=args.reconnect_max_delay,
            reconnect_multiplier=args.reconnect_multiplier,
            max_failures=args.max_failures,
            log_level="DEBUG" if args.verbose else None,
        )
    except ConfigurationError as e:
        setup_logging("INFO")
        logger.error(f"Configuration error: {e}")
        return 2

    setup_logging(config.log_level, config.log_file)

    try:
        service = BridgeService(config)
        service.run_forever()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    except Exception as e:
        logger.error(f"Bridge failed: {e}", exc_info=True)
        return 1

    final_state = service.supervisor.current_state
    if final_state.reason not in (STOPPED_REASON, STOPPED_BY_USER_REASON):
        logger.error(f"Bridge exited in state {final_state}: {final_state.reason}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
