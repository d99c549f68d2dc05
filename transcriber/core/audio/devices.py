"""Platform specific defaults for the FFmpeg input device."""

from __future__ import annotations

import sys
from typing import Optional

_DEFAULT_DEVICES = {
    "darwin": ":MacBook Pro Microphone",
    "linux": "default",
    "windows": "Microphone",
}

_INPUT_FORMATS = {
    "darwin": "avfoundation",
    "linux": "alsa",
    "windows": "dshow",
}

FALLBACK_DEVICE = "default"
FALLBACK_INPUT_FORMAT = "pulse"


def detect_platform(platform: Optional[str] = None) -> str:
    """Normalise ``sys.platform`` style names to ``darwin``/``linux``/``windows``."""

    value = (platform or sys.platform).strip().lower()
    if value.startswith("win") or value == "cygwin":
        return "windows"
    if value.startswith("linux"):
        return "linux"
    return value


def default_device(platform: str) -> str:
    """Return the device FFmpeg should record from when none is configured."""

    return _DEFAULT_DEVICES.get(detect_platform(platform), FALLBACK_DEVICE)


def input_format(platform: str) -> str:
    return _INPUT_FORMATS.get(detect_platform(platform), FALLBACK_INPUT_FORMAT)


def input_target(platform: str, device: str) -> str:
    """Return the ``-i`` argument for ``device`` on ``platform``."""

    if detect_platform(platform) == "windows" and not device.lower().startswith("audio="):
        return f"audio={device}"
    return device


__all__ = [
    "FALLBACK_DEVICE",
    "FALLBACK_INPUT_FORMAT",
    "default_device",
    "detect_platform",
    "input_format",
    "input_target",
]
