"""Chunk recorder implementation powered by the FFmpeg command line tool."""

from __future__ import annotations

import contextlib
import io
import signal
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional

from ...logging import get_logger
from ...utils.process import DEFAULT_GRACE_SECONDS, resolve_binary, stop_process
from .base import CaptureError, CaptureInfo, ChunkRecorder
from .devices import default_device, detect_platform, input_format, input_target

LOGGER = get_logger(__name__)

MAX_RECORD_DURATION_SECONDS = 30 * 60
QUIT_TOKEN = b"q"

# 255 is ffmpeg's exit code after the "q" command, 130/143 are the shell
# style SIGINT/SIGTERM codes and the negative values are how Popen reports
# the same signals.
CLEAN_EXIT_CODES = frozenset(
    {0, 255, 130, 143, -int(signal.SIGINT), -int(signal.SIGTERM)}
)


class FFmpegBinaryNotFoundError(CaptureError):
    """Raised when the configured FFmpeg executable cannot be located."""


def is_clean_exit(returncode: Optional[int]) -> bool:
    return returncode in CLEAN_EXIT_CODES


def _seconds_for(duration: float) -> int:
    if duration is None or duration <= 0:
        return MAX_RECORD_DURATION_SECONDS
    return max(int(round(duration)), 1)


class FFmpegRecorder(ChunkRecorder):
    """Record fixed length audio files by running one FFmpeg process per chunk."""

    def __init__(
        self,
        device: Optional[str] = None,
        *,
        binary: str = "ffmpeg",
        platform: Optional[str] = None,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
        poll_interval: float = 0.1,
        timeout_margin: float = 10.0,
    ) -> None:
        resolved_platform = detect_platform(platform)
        self.info = CaptureInfo(
            device=device or default_device(resolved_platform),
            input_format=input_format(resolved_platform),
            platform=resolved_platform,
        )
        self._binary = binary
        self._grace_seconds = grace_seconds
        self._poll_interval = poll_interval
        self._timeout_margin = timeout_margin

    def validate(self) -> None:
        if resolve_binary(self._binary) is None:
            raise FFmpegBinaryNotFoundError(
                f"FFmpeg binary '{self._binary}' was not found on PATH"
            )

    def build_command(self, executable: str, target: Path, seconds: int) -> List[str]:
        return [
            executable,
            "-hide_banner",
            "-loglevel",
            "warning",
            "-nostats",
            "-f",
            self.info.input_format,
            "-i",
            input_target(self.info.platform, self.info.device),
            "-t",
            str(seconds),
            "-y",
            str(target),
        ]

    def capture(
        self,
        target: Path,
        duration: float,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        executable = resolve_binary(self._binary)
        if executable is None:
            raise FFmpegBinaryNotFoundError(
                f"FFmpeg binary '{self._binary}' was not found on PATH"
            )

        target = Path(target)
        target.parent.mkdir(parents=True, exist_ok=True)
        seconds = _seconds_for(duration)
        command = self.build_command(executable, target, seconds)
        LOGGER.debug("Running %s", " ".join(command))

        try:
            process = subprocess.Popen(  # noqa: S603 - required to spawn ffmpeg
                command,
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
            )
        except OSError as exc:
            raise CaptureError(f"Failed to launch FFmpeg binary '{executable}'") from exc

        stderr_thread: Optional[threading.Thread] = None
        if process.stderr is not None:
            stderr_thread = threading.Thread(
                target=self._stderr_loop,
                args=(process.stderr,),
                daemon=True,
            )
            stderr_thread.start()

        try:
            self._wait(process, seconds, stop_event)
        except BaseException:
            # Never leave ffmpeg holding the input device.
            if process.poll() is None:
                self._graceful_stop(process)
            raise
        finally:
            if process.stdin is not None:
                with contextlib.suppress(OSError, ValueError):
                    process.stdin.close()
            if stderr_thread is not None:
                stderr_thread.join(timeout=1)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _wait(
        self,
        process: subprocess.Popen,
        seconds: int,
        stop_event: Optional[threading.Event],
    ) -> None:
        deadline = time.monotonic() + seconds + self._timeout_margin
        while True:
            if stop_event is not None and stop_event.is_set():
                self._graceful_stop(process)
                return

            try:
                returncode = process.wait(timeout=self._poll_interval)
            except subprocess.TimeoutExpired:
                if time.monotonic() >= deadline:
                    self._graceful_stop(process)
                    raise CaptureError(
                        f"FFmpeg did not finish a {seconds}s recording in time"
                    )
                continue

            if is_clean_exit(returncode):
                return
            raise CaptureError(f"Recording failed: FFmpeg exited with code {returncode}")

    def _graceful_stop(self, process: subprocess.Popen) -> None:
        LOGGER.info("Stopping recording gracefully")
        returncode = stop_process(
            process,
            quit_token=QUIT_TOKEN,
            grace_seconds=self._grace_seconds,
        )
        if returncode is None:
            LOGGER.warning("FFmpeg failed to exit cleanly and was killed")
        elif not is_clean_exit(returncode):
            LOGGER.warning("FFmpeg exited with code %s while stopping", returncode)

    def _stderr_loop(self, pipe: io.BufferedReader) -> None:  # pragma: no cover - runtime logging
        try:
            for line in iter(pipe.readline, b""):
                text = line.decode(errors="ignore").strip()
                if text:
                    LOGGER.debug("ffmpeg[%s]: %s", self.info.device, text)
        finally:
            with contextlib.suppress(Exception):
                pipe.close()


__all__ = [
    "CLEAN_EXIT_CODES",
    "FFmpegBinaryNotFoundError",
    "FFmpegRecorder",
    "MAX_RECORD_DURATION_SECONDS",
    "is_clean_exit",
]
