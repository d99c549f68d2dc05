"""Bounded chunk queue and the worker that transcribes queued chunks."""

from __future__ import annotations

import contextlib
import queue
import threading
from pathlib import Path
from typing import Callable, Optional

from ...data.models import Chunk, ChunkStatus
from ...data.transcript import TranscriptWriter
from ...logging import get_logger
from ...services.transcription.base import TranscriptionError, TranscriptionService
from .quality import should_skip_chunk, unique_word_count

LOGGER = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 2

_CLOSED = object()


class ChunkQueue:
    """FIFO hand-off between the capture loop and the transcription worker.

    ``put`` blocks while the queue is full so a slow transcriber throttles
    recording instead of letting chunk files pile up on disk.
    """

    def __init__(self, capacity: int = DEFAULT_QUEUE_SIZE) -> None:
        if capacity < 1:
            raise ValueError("Chunk queue capacity must be at least 1")
        self.capacity = capacity
        self._queue: "queue.Queue[object]" = queue.Queue(maxsize=capacity)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def put(self, chunk: Chunk) -> None:
        if self._closed:
            raise RuntimeError("Cannot enqueue chunks after the queue was closed")
        try:
            self._queue.put_nowait(chunk)
        except queue.Full:
            LOGGER.info("Transcription queue full, waiting before queueing chunk %d", chunk.sequence)
            self._queue.put(chunk)

    def get(self) -> Optional[Chunk]:
        """Return the next chunk, or ``None`` once the queue is closed and drained."""

        item = self._queue.get()
        if item is _CLOSED:
            # Leave the marker for any other consumer blocked on get().
            self._queue.put(_CLOSED)
            return None
        return item  # type: ignore[return-value]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_CLOSED)


class TranscriptionWorker:
    """Consume chunks in order, transcribe them and append the survivors."""

    def __init__(
        self,
        chunks: ChunkQueue,
        transcription: TranscriptionService,
        writer: TranscriptWriter,
        *,
        min_unique_words: int = 5,
        remove_audio_on_success: bool = True,
        on_chunk: Optional[Callable[[Chunk], None]] = None,
    ) -> None:
        self._chunks = chunks
        self._transcription = transcription
        self._writer = writer
        self._min_unique_words = min_unique_words
        self._remove_audio = remove_audio_on_success
        self._on_chunk = on_chunk
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, name="transcription-worker", daemon=True)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while True:
            chunk = self._chunks.get()
            if chunk is None:
                break
            try:
                self.process(chunk)
            except Exception as exc:
                LOGGER.exception("Unexpected error while processing chunk %d", chunk.sequence)
                chunk.status = ChunkStatus.FAILED
                chunk.error = str(exc)
            self._notify(chunk)
        LOGGER.debug("Transcription worker drained the queue")

    def process(self, chunk: Chunk) -> None:
        if not _has_audio(chunk.audio_path):
            LOGGER.warning("No valid recording for chunk %d, skipping", chunk.sequence)
            chunk.status = ChunkStatus.FAILED
            chunk.error = f"Recording is missing or empty: {chunk.audio_path}"
            return

        chunk.status = ChunkStatus.TRANSCRIBING
        output_base = chunk.audio_path.with_name(f"{chunk.audio_path.stem}_transcript")
        try:
            output = self._transcription.transcribe(chunk.audio_path, output_base)
        except TranscriptionError as exc:
            LOGGER.error("Transcription failed for chunk %d: %s", chunk.sequence, exc)
            chunk.status = ChunkStatus.FAILED
            chunk.error = str(exc)
            return

        try:
            text = output.read_text(encoding="utf-8", errors="replace")
            if should_skip_chunk(text, self._min_unique_words):
                LOGGER.info(
                    "Skipping chunk %d due to insufficient unique words (%d found)",
                    chunk.sequence,
                    unique_word_count(text),
                )
                chunk.status = ChunkStatus.SKIPPED
            else:
                self._writer.append(text, chunk.sequence)
                chunk.status = ChunkStatus.APPENDED
        except OSError as exc:
            LOGGER.error("Failed to append chunk %d: %s", chunk.sequence, exc)
            chunk.status = ChunkStatus.FAILED
            chunk.error = str(exc)
            return
        finally:
            with contextlib.suppress(OSError):
                output.unlink(missing_ok=True)

        if self._remove_audio:
            with contextlib.suppress(OSError):
                chunk.audio_path.unlink(missing_ok=True)

    def _notify(self, chunk: Chunk) -> None:
        if self._on_chunk is None:
            return
        try:
            self._on_chunk(chunk)
        except Exception:  # pragma: no cover - callbacks should not break pipeline
            LOGGER.exception("Chunk callback raised an exception")


def _has_audio(path: Path) -> bool:
    try:
        return path.stat().st_size > 0
    except OSError:
        return False


__all__ = ["ChunkQueue", "DEFAULT_QUEUE_SIZE", "TranscriptionWorker"]
