"""Dummy transcription service for testing or offline usage."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .base import TranscriptionService, check_audio_file


class DummyTranscriptionService(TranscriptionService):
    def __init__(self, text: Optional[str] = None, output_format: str = "txt") -> None:
        self.text = text
        self.output_format = output_format

    def transcribe(self, audio_path: Path, output_base: Path) -> Path:
        check_audio_file(audio_path)
        text = self.text
        if text is None:
            text = (
                f"Dummy transcript for {Path(audio_path).name}. "
                "Replace with a real transcription backend."
            )
        output = self.output_path_for(output_base)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        return output


__all__ = ["DummyTranscriptionService"]
