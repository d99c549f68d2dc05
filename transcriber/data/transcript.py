"""Append-only writer for the session transcript file."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from ..logging import get_logger
from .models import TranscriptSegment

LOGGER = get_logger(__name__)

SEGMENT_SEPARATOR = "\n\n"


class TranscriptWriter:
    """Appends time-stamped chunk blocks to a single transcript file.

    Only one thread may use a writer; the pipeline gives it to the
    transcription worker exclusively.
    """

    def __init__(self, path: Path, chunk_duration: int) -> None:
        if chunk_duration <= 0:
            raise ValueError("chunk_duration must be a positive number of seconds")
        self.path = Path(path)
        self.chunk_duration = int(chunk_duration)
        self._segments: List[TranscriptSegment] = []

    @property
    def segments(self) -> List[TranscriptSegment]:
        return list(self._segments)

    @property
    def last_sequence(self) -> Optional[int]:
        if not self._segments:
            return None
        return self._segments[-1].sequence

    def append(self, text: str, sequence: int) -> TranscriptSegment:
        last = self.last_sequence
        if last is not None and sequence <= last:
            raise ValueError(
                f"chunk {sequence} cannot follow chunk {last} in the transcript"
            )

        segment = TranscriptSegment.for_chunk(sequence, self.chunk_duration, text)
        block = f"{segment.header}\n{text}"
        if self._segments:
            block = SEGMENT_SEPARATOR + block

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(block)

        self._segments.append(segment)
        LOGGER.info("Appended chunk %d to %s %s", sequence, self.path, segment.header)
        return segment


__all__ = ["SEGMENT_SEPARATOR", "TranscriptWriter"]
