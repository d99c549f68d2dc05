"""Factories for runtime service selection."""

from __future__ import annotations

from typing import Optional

from ..config import Settings, get_settings
from .transcription.base import TranscriptionService
from .transcription.dummy import DummyTranscriptionService
from .transcription.whisper_cpp import WhisperCppTranscriptionService


class ServiceConfigurationError(ValueError):
    """Raised when an unknown backend is requested."""


def _normalise(name: Optional[str]) -> str:
    if not name:
        return "whisper"
    return name.strip().lower()


def resolve_transcription_backend(
    name: Optional[str],
    settings: Optional[Settings] = None,
) -> TranscriptionService:
    settings = settings or get_settings()
    backend = _normalise(name)
    if backend in {"whisper", "whisper-cpp", "whisper.cpp"}:
        return WhisperCppTranscriptionService(settings=settings)
    if backend == "dummy":
        return DummyTranscriptionService(output_format=settings.output_format)
    raise ServiceConfigurationError(f"Unknown transcription backend: {name}")


__all__ = [
    "ServiceConfigurationError",
    "resolve_transcription_backend",
]
