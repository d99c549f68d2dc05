"""Data models used by the transcription pipeline."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, model_validator

TIMESTAMP_SEPARATOR = " – "


def format_timestamp(seconds: int) -> str:
    """Render ``seconds`` as ``H:MM:SS`` from one hour up, ``M:SS`` below."""

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class ChunkStatus(str, enum.Enum):
    RECORDING = "recording"
    QUEUED = "queued"
    TRANSCRIBING = "transcribing"
    APPENDED = "appended"
    SKIPPED = "skipped"
    FAILED = "failed"

    @property
    def is_final(self) -> bool:
        return self in {ChunkStatus.APPENDED, ChunkStatus.SKIPPED, ChunkStatus.FAILED}


@dataclass
class Chunk:
    sequence: int
    audio_path: Path
    duration: int
    status: ChunkStatus = ChunkStatus.RECORDING
    error: Optional[str] = None


@dataclass
class Session:
    id: str
    output_path: Path
    output_format: str
    next_sequence: int = 1
    queued: int = 0

    @property
    def transcript_path(self) -> Path:
        return self.output_path.with_name(f"{self.output_path.name}.{self.output_format}")


class TranscriptSegment(BaseModel):
    """One block of the transcript, covering ``[start, end)`` seconds."""

    sequence: int = Field(ge=1)
    start: int = Field(ge=0)
    end: int = Field(ge=0)
    text: str

    @model_validator(mode="after")
    def _check_range(self) -> "TranscriptSegment":
        if self.end < self.start:
            raise ValueError("segment end must not precede its start")
        return self

    @classmethod
    def for_chunk(cls, sequence: int, chunk_duration: int, text: str) -> "TranscriptSegment":
        return cls(
            sequence=sequence,
            start=(sequence - 1) * chunk_duration,
            end=sequence * chunk_duration,
            text=text,
        )

    @property
    def header(self) -> str:
        return f"[{format_timestamp(self.start)}{TIMESTAMP_SEPARATOR}{format_timestamp(self.end)}]"


__all__ = [
    "Chunk",
    "ChunkStatus",
    "Session",
    "TIMESTAMP_SEPARATOR",
    "TranscriptSegment",
    "format_timestamp",
]
