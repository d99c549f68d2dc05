"""Audio capture package."""

from .base import CaptureError, CaptureInfo, ChunkRecorder

__all__ = ["CaptureError", "CaptureInfo", "ChunkRecorder"]
