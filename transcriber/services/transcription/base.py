"""Transcription service abstractions."""

from __future__ import annotations

import abc
from pathlib import Path


class TranscriptionError(RuntimeError):
    """Raised when a chunk cannot be transcribed."""


class ModelNotFoundError(TranscriptionError):
    """Raised when the configured speech model file is missing."""


class TranscriptionService(abc.ABC):
    """Convert one audio file into a text file on disk."""

    output_format: str = "txt"

    def validate(self) -> None:
        """Raise :class:`TranscriptionError` if the backend cannot run at all."""

    def output_path_for(self, output_base: Path) -> Path:
        return Path(f"{output_base}.{self.output_format}")

    @abc.abstractmethod
    def transcribe(self, audio_path: Path, output_base: Path) -> Path:
        """Transcribe ``audio_path`` into ``output_base.<format>`` and return that path."""
        raise NotImplementedError


def check_audio_file(audio_path: Path) -> None:
    try:
        size = Path(audio_path).stat().st_size
    except OSError as exc:
        raise TranscriptionError(f"Audio file not accessible: {audio_path}") from exc
    if size == 0:
        raise TranscriptionError(f"Audio file is empty: {audio_path}")


__all__ = [
    "ModelNotFoundError",
    "TranscriptionError",
    "TranscriptionService",
    "check_audio_file",
]
