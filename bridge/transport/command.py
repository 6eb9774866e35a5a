"""
FFmpeg command construction for the RTSP to SRT bridge.

The bridge never re-encodes: H.264 is passed through, parameter sets are
repeated in front of every keyframe so receivers can join at any IDR, and the
result is muxed into MPEG-TS for SRT transport.
"""

from typing import List

from bridge.transport.endpoints import StreamEndpoints

DEFAULT_FFMPEG_BIN = "ffmpeg"
DEFAULT_RTSP_LATENCY_MS = 200


def build_ffmpeg_command(
    endpoints: StreamEndpoints,
    ffmpeg_bin: str = DEFAULT_FFMPEG_BIN,
    latency_ms: int = DEFAULT_RTSP_LATENCY_MS,
) -> List[str]:
    """
    Build the ffmpeg argv for one bridge run.

    Args:
        endpoints: Source and destination URLs
        ffmpeg_bin: ffmpeg executable (name on PATH or absolute path)
        latency_ms: RTSP jitter buffer (maps to -max_delay, microseconds)

    Returns:
        Command list suitable for subprocess.Popen
    """
    return [
        ffmpeg_bin,
        "-hide_banner",
        "-nostdin",
        "-loglevel", "warning",
        "-rtsp_transport", "tcp",
        "-max_delay", str(latency_ms * 1000),
        "-i", endpoints.rtsp_url,
        "-map", "0",
        "-c", "copy",
        "-bsf:v", "dump_extra",
        "-f", "mpegts",
        # Progress reports on stdout are how the bridge detects live media
        "-progress", "pipe:1",
        "-nostats",
        endpoints.srt_url,
    ]
