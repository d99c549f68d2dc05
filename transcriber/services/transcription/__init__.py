"""Transcription services."""

from .base import ModelNotFoundError, TranscriptionError, TranscriptionService
from .dummy import DummyTranscriptionService
from .whisper_cpp import WhisperCppTranscriptionService

__all__ = [
    "DummyTranscriptionService",
    "ModelNotFoundError",
    "TranscriptionError",
    "TranscriptionService",
    "WhisperCppTranscriptionService",
]
