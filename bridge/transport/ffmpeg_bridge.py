"""
FFmpeg-backed transport engine.

FFmpegBridge runs one ffmpeg child process per attempt, relays its stderr to
the log, watches its progress output to detect live media, and polls the
shared running signal so a shutdown request stops the child within one poll
interval.
"""

from __future__ import annotations

import collections
import logging
import subprocess
import threading
from typing import BinaryIO, Deque, List, Optional

from bridge.errors import PipelineCreationFailed, PipelineExecutionFailed
from bridge.transport.base import Completed, Failed, RunOutcome, StreamingCallback, TransportEngine
from bridge.transport.command import DEFAULT_FFMPEG_BIN, DEFAULT_RTSP_LATENCY_MS, build_ffmpeg_command
from bridge.transport.endpoints import StreamEndpoints

logger = logging.getLogger(__name__)

# Responsive shutdown: the running signal is re-checked at this interval
POLL_INTERVAL_SEC = 0.1

TERMINATE_TIMEOUT_SEC = 2.0
DRAIN_JOIN_TIMEOUT_SEC = 1.0
STDERR_TAIL_LINES = 20


class FFmpegBridge(TransportEngine):
    """
    RTSP to SRT bridge driven by an ffmpeg subprocess.

    Outcome mapping:
    - running signal cleared  -> child terminated, Completed()
    - exit code 0             -> Completed() (end of stream)
    - non-zero exit code      -> Failed("... exited with code N: <last stderr line>")
    - spawn failure (OSError) -> Failed("Pipeline creation failed: ...")
    """

    def __init__(
        self,
        endpoints: StreamEndpoints,
        ffmpeg_bin: str = DEFAULT_FFMPEG_BIN,
        latency_ms: int = DEFAULT_RTSP_LATENCY_MS,
        ffmpeg_cmd: Optional[List[str]] = None,
        poll_interval: float = POLL_INTERVAL_SEC,
        terminate_timeout: float = TERMINATE_TIMEOUT_SEC,
    ) -> None:
        """
        Args:
            endpoints: Validated RTSP/SRT URLs
            ffmpeg_bin: ffmpeg executable
            latency_ms: RTSP jitter buffer in milliseconds
            ffmpeg_cmd: Full command override (default: built from endpoints)
            poll_interval: Seconds between running-signal checks
            terminate_timeout: Grace period before SIGKILL on shutdown
        """
        self._endpoints = endpoints
        self._ffmpeg_cmd = (
            list(ffmpeg_cmd) if ffmpeg_cmd is not None
            else build_ffmpeg_command(endpoints, ffmpeg_bin=ffmpeg_bin, latency_ms=latency_ms)
        )
        self._poll_interval = poll_interval
        self._terminate_timeout = terminate_timeout
        self._stderr_tail: Deque[str] = collections.deque(maxlen=STDERR_TAIL_LINES)

    @property
    def command(self) -> List[str]:
        return list(self._ffmpeg_cmd)

    @property
    def last_stderr(self) -> str:
        """Most recent stderr lines of the last attempt."""
        return "\n".join(self._stderr_tail)

    def config(self) -> StreamEndpoints:
        return self._endpoints

    def run(
        self,
        running: threading.Event,
        on_streaming: Optional[StreamingCallback] = None,
    ) -> RunOutcome:
        self._stderr_tail.clear()
        logger.info(f"Starting pipeline: {self._endpoints.rtsp_url} -> {self._endpoints.srt_url}")
        logger.debug(f"ffmpeg command: {' '.join(self._ffmpeg_cmd)}")

        try:
            process = subprocess.Popen(
                self._ffmpeg_cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                bufsize=0,
            )
        except OSError as e:
            error = PipelineCreationFailed(str(e))
            logger.error(str(error))
            return Failed(str(error))

        logger.info(f"Started ffmpeg PID={process.pid}")

        progress_seen = threading.Event()
        stdout_thread = threading.Thread(
            target=self._stdout_drain,
            args=(process.stdout, progress_seen),
            daemon=True,
            name="FFmpegProgressDrain",
        )
        stderr_thread = threading.Thread(
            target=self._stderr_drain,
            args=(process.stderr,),
            daemon=True,
            name="FFmpegStderrDrain",
        )
        stdout_thread.start()
        stderr_thread.start()

        streaming_reported = False
        try:
            while True:
                if not running.is_set():
                    logger.info("Shutdown signal received, stopping ffmpeg")
                    self._terminate(process)
                    return Completed()

                if not streaming_reported and progress_seen.is_set():
                    streaming_reported = True
                    logger.info("Media flowing (first progress report)")
                    if on_streaming is not None:
                        on_streaming()

                try:
                    exit_code = process.wait(timeout=self._poll_interval)
                except subprocess.TimeoutExpired:
                    continue
                break
        finally:
            if process.poll() is None:
                self._terminate(process)
            stdout_thread.join(timeout=DRAIN_JOIN_TIMEOUT_SEC)
            stderr_thread.join(timeout=DRAIN_JOIN_TIMEOUT_SEC)
            for pipe in (process.stdout, process.stderr):
                if pipe is not None:
                    pipe.close()

        if not streaming_reported and progress_seen.is_set() and on_streaming is not None:
            on_streaming()

        if exit_code == 0:
            logger.info("End of stream (ffmpeg exited cleanly)")
            return Completed()

        detail = f"ffmpeg exited with code {exit_code}"
        if self._stderr_tail:
            detail = f"{detail}: {self._stderr_tail[-1]}"
        error = PipelineExecutionFailed(detail, exit_code=exit_code)
        logger.error(str(error))
        return Failed(str(error))

    def _terminate(self, process: subprocess.Popen) -> None:
        if process.poll() is not None:
            return
        process.terminate()
        try:
            process.wait(timeout=self._terminate_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("ffmpeg did not terminate, killing")
            process.kill()
            process.wait()

    def _stdout_drain(self, stdout: Optional[BinaryIO], progress_seen: threading.Event) -> None:
        """Read `-progress` key=value lines; any progress= line means media is flowing."""
        if stdout is None:
            return
        try:
            for line in iter(stdout.readline, b""):
                if line.startswith(b"progress="):
                    progress_seen.set()
        except (OSError, ValueError) as e:
            logger.debug(f"Progress read error (likely closed): {e}")
        logger.debug("FFmpeg progress drain thread exiting")

    def _stderr_drain(self, stderr: Optional[BinaryIO]) -> None:
        if stderr is None:
            return
        try:
            for line in iter(stderr.readline, b""):
                decoded_line = line.decode(errors="ignore").rstrip()
                if not decoded_line:
                    continue
                self._stderr_tail.append(decoded_line)
                logger.warning(f"[FFMPEG] {decoded_line}")
        except (OSError, ValueError) as e:
            logger.debug(f"Stderr read error (likely closed): {e}")
        logger.debug("FFmpeg stderr drain thread exiting")
