"""Audio capture abstractions."""

from __future__ import annotations

import abc
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


@dataclass
class CaptureInfo:
    """Metadata about the input a recorder is bound to."""

    device: str
    input_format: str
    platform: str


class ChunkRecorder(abc.ABC):
    """Records one bounded audio file per call."""

    info: CaptureInfo

    def validate(self) -> None:
        """Raise :class:`CaptureError` if the recorder cannot run at all."""

    @abc.abstractmethod
    def capture(
        self,
        target: Path,
        duration: float,
        stop_event: Optional[threading.Event] = None,
    ) -> None:
        """Record into ``target`` for ``duration`` seconds or until ``stop_event`` is set."""


class CaptureError(RuntimeError):
    """Raised when an audio chunk cannot be recorded."""


__all__ = ["CaptureError", "CaptureInfo", "ChunkRecorder"]
