"""
Validated source/destination endpoints for the bridge.
"""

from dataclasses import dataclass

from bridge.errors import InvalidUrl

RTSP_SCHEME = "rtsp://"
SRT_SCHEME = "srt://"


@dataclass(frozen=True)
class StreamEndpoints:
    """RTSP source and SRT destination URLs."""
    rtsp_url: str
    srt_url: str

    def __post_init__(self) -> None:
        if not self.rtsp_url.startswith(RTSP_SCHEME):
            raise InvalidUrl(f"Invalid RTSP URL: {self.rtsp_url} (must start with {RTSP_SCHEME})")
        if not self.srt_url.startswith(SRT_SCHEME):
            raise InvalidUrl(f"Invalid SRT URL: {self.srt_url} (must start with {SRT_SCHEME})")
