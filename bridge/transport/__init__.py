"""
Bridge transport subsystem.

This package provides the transport engine interface and its ffmpeg-backed
implementation:
- TransportEngine: one run attempt, observing the shared running signal
- FFmpegBridge: RTSP to SRT remux through an ffmpeg subprocess
"""

from bridge.transport.base import Completed, Failed, RunOutcome, TransportEngine
from bridge.transport.endpoints import StreamEndpoints
from bridge.transport.ffmpeg_bridge import FFmpegBridge

__all__ = [
    "Completed",
    "Failed",
    "RunOutcome",
    "TransportEngine",
    "StreamEndpoints",
    "FFmpegBridge",
]
