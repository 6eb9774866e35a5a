"""
RTSP to SRT bridge.

Keeps a media link alive across transient failures: an ffmpeg transport is
driven by ReconnectSupervisor, which retries failures with exponential backoff
and exposes state through Prometheus metrics.
"""

__version__ = "0.1.0"
