"""Factory helpers for constructing chunk recorders."""

from __future__ import annotations

from typing import Optional

from ...config import Settings, get_settings
from ...logging import get_logger
from .base import ChunkRecorder
from .ffmpeg_backend import FFmpegRecorder

LOGGER = get_logger(__name__)


def create_recorder(
    settings: Optional[Settings] = None,
    device: Optional[str] = None,
) -> ChunkRecorder:
    """Return the recorder configured by ``settings``.

    An explicit ``device`` wins over ``settings.audio_device``; when neither
    is set the platform default is used.
    """

    settings = settings or get_settings()
    recorder = FFmpegRecorder(
        device or settings.audio_device,
        binary=settings.ffmpeg_binary,
        grace_seconds=settings.stop_grace_seconds,
    )
    LOGGER.debug(
        "Using %s input '%s' on %s",
        recorder.info.input_format,
        recorder.info.device,
        recorder.info.platform,
    )
    return recorder


__all__ = ["create_recorder"]
