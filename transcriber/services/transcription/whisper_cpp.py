"""whisper.cpp powered transcription service."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import List, Optional

from ...config import Settings, get_settings
from ...logging import get_logger
from ...utils.process import resolve_binary
from .base import ModelNotFoundError, TranscriptionError, TranscriptionService, check_audio_file

LOGGER = get_logger(__name__)

_STDERR_TAIL_LINES = 5


class WhisperCppTranscriptionService(TranscriptionService):
    """Run ``whisper-cli`` once per audio file."""

    def __init__(
        self,
        *,
        model_path: Optional[Path] = None,
        language: Optional[str] = None,
        output_format: Optional[str] = None,
        binary: Optional[str] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        settings = settings or get_settings()
        self.model_path = Path(model_path or settings.model_path)
        self.language = language or settings.language
        self.output_format = output_format or settings.output_format
        self.binary = binary or settings.whisper_binary

    def validate(self) -> None:
        self.validate_model()
        if resolve_binary(self.binary) is None:
            raise TranscriptionError(f"Whisper binary '{self.binary}' was not found on PATH")

    def validate_model(self) -> None:
        if not self.model_path.is_file():
            raise ModelNotFoundError(f"Model file not found: {self.model_path}")

    def build_command(self, audio_path: Path, output_base: Path) -> List[str]:
        return [
            self.binary,
            str(audio_path),
            "-m",
            str(self.model_path),
            "--language",
            self.language,
            f"--output-{self.output_format}",
            "-of",
            str(output_base),
        ]

    def transcribe(self, audio_path: Path, output_base: Path) -> Path:
        check_audio_file(audio_path)
        self.validate_model()

        command = self.build_command(audio_path, output_base)
        LOGGER.info("Transcribing %s", audio_path)
        try:
            completed = subprocess.run(  # noqa: S603 - required to spawn whisper
                command,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise TranscriptionError(f"Failed to launch whisper binary '{self.binary}'") from exc

        if completed.returncode != 0:
            detail = _stderr_tail(completed.stderr)
            message = f"Transcription failed: whisper exited with code {completed.returncode}"
            if detail:
                message = f"{message}: {detail}"
            raise TranscriptionError(message)

        output = self.output_path_for(output_base)
        if not output.exists():
            raise TranscriptionError(f"Transcription output not found: {output}")

        LOGGER.debug("Transcription saved: %s", output)
        return output


def _stderr_tail(stderr: Optional[bytes]) -> str:
    if not stderr:
        return ""
    lines = [line.strip() for line in stderr.decode(errors="ignore").splitlines() if line.strip()]
    return " | ".join(lines[-_STDERR_TAIL_LINES:])


__all__ = ["WhisperCppTranscriptionService"]
