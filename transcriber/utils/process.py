"""Subprocess helpers shared by the recorder and transcription adapters."""

from __future__ import annotations

import contextlib
import shutil
import subprocess
from pathlib import Path
from typing import Optional

from ..logging import get_logger

LOGGER = get_logger(__name__)

DEFAULT_GRACE_SECONDS = 3.0
_KILL_WAIT_SECONDS = 5.0


def resolve_binary(binary: str) -> Optional[str]:
    """Return the absolute path to ``binary`` if it is on PATH or exists on disk."""

    if not binary:
        return None

    found = shutil.which(binary)
    if found:
        return found

    candidate = Path(binary)
    if candidate.exists():
        return str(candidate)

    return None


def stop_process(
    process: subprocess.Popen,
    *,
    quit_token: Optional[bytes] = b"q",
    grace_seconds: float = DEFAULT_GRACE_SECONDS,
) -> Optional[int]:
    """Stop ``process`` cooperatively, killing it if it ignores the request.

    The quit token is written to the process' stdin, stdin is closed and the
    process gets ``grace_seconds`` to exit on its own. Returns the exit code,
    or ``None`` when the process had to be killed.
    """

    returncode = process.poll()
    if returncode is not None:
        return returncode

    stdin = process.stdin
    if stdin is not None:
        if quit_token:
            try:
                stdin.write(quit_token)
                stdin.flush()
            except (OSError, ValueError) as exc:
                LOGGER.warning("Could not send quit command to process: %s", exc)
        with contextlib.suppress(OSError, ValueError):
            stdin.close()

    try:
        return process.wait(timeout=grace_seconds)
    except subprocess.TimeoutExpired:
        LOGGER.warning(
            "Process %s did not exit within %.1fs; terminating it",
            getattr(process, "pid", "?"),
            grace_seconds,
        )

    with contextlib.suppress(OSError):
        process.kill()
    with contextlib.suppress(subprocess.TimeoutExpired):
        process.wait(timeout=_KILL_WAIT_SECONDS)
    return None


__all__ = ["DEFAULT_GRACE_SECONDS", "resolve_binary", "stop_process"]
