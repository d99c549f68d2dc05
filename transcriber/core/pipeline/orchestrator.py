"""Session controller coordinating chunk capture and transcription."""

from __future__ import annotations

import contextlib
import enum
import signal
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from ...config import Settings, get_settings
from ...data.models import Chunk, ChunkStatus, Session
from ...data.transcript import TranscriptWriter
from ...logging import get_logger
from ...services.transcription.base import TranscriptionService
from ..audio.base import CaptureError, ChunkRecorder
from .worker import ChunkQueue, TranscriptionWorker

LOGGER = get_logger(__name__)

_STOP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class SessionState(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    DRAINING = "draining"
    TERMINATED = "terminated"


@dataclass
class SessionOutcome:
    session: Session
    chunks: List[Chunk] = field(default_factory=list)
    transcript_path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def count(self, status: ChunkStatus) -> int:
        return sum(1 for chunk in self.chunks if chunk.status is status)


class RecordingControl:
    """Stop flag shared between signal handlers, the controller and the recorder."""

    def __init__(self) -> None:
        self._stop = threading.Event()

    def request_stop(self) -> None:
        self._stop.set()

    @property
    def should_stop(self) -> bool:
        return self._stop.is_set()

    @property
    def stop_event(self) -> threading.Event:
        return self._stop


class SessionController:
    """Drive the record → queue → transcribe → append loop for one session."""

    def __init__(
        self,
        recorder: ChunkRecorder,
        transcription: TranscriptionService,
        settings: Optional[Settings] = None,
        *,
        output_dir: Optional[Path] = None,
        control: Optional[RecordingControl] = None,
        on_chunk: Optional[Callable[[Chunk], None]] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.recorder = recorder
        self.transcription = transcription
        self.output_dir = Path(output_dir or self.settings.output_dir)
        self.temp_dir = Path(self.settings.temp_dir)
        self.control = control or RecordingControl()
        self._on_chunk = on_chunk
        self._state = SessionState.IDLE

    @property
    def state(self) -> SessionState:
        return self._state

    def new_session(self, session_id: Optional[str] = None) -> Session:
        session_id = session_id or datetime.now().strftime("%Y%m%d_%H%M%S")
        return Session(
            id=session_id,
            output_path=self.output_dir / f"run_{session_id}",
            output_format=self.transcription.output_format,
        )

    def chunk_path(self, session: Session, sequence: int) -> Path:
        return self.temp_dir / f"chunk_{session.id}_{sequence}.{self.settings.audio_extension}"

    def run(
        self,
        *,
        max_chunks: Optional[int] = None,
        session_id: Optional[str] = None,
        install_signal_handlers: bool = True,
    ) -> SessionOutcome:
        """Record and transcribe chunks until stopped, then drain and report.

        Configuration problems (missing model, missing binaries) raise before
        anything is recorded. A capture failure ends the session after the
        already queued chunks have been transcribed; it is reported through
        :attr:`SessionOutcome.error`.
        """

        if self._state is not SessionState.IDLE:
            raise RuntimeError("A session controller can only run once")

        self.transcription.validate()
        self.recorder.validate()
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

        session = self.new_session(session_id)
        outcome = SessionOutcome(session=session)
        chunk_duration = self.settings.chunk_duration_seconds
        writer = TranscriptWriter(session.transcript_path, chunk_duration)
        chunk_queue = ChunkQueue(self.settings.queue_size)
        worker = TranscriptionWorker(
            chunk_queue,
            self.transcription,
            writer,
            min_unique_words=self.settings.min_unique_words,
            remove_audio_on_success=self.settings.remove_audio_on_success,
            on_chunk=self._on_chunk,
        )

        LOGGER.info(
            "Starting session %s; chunk size %d seconds, transcript at %s",
            session.id,
            chunk_duration,
            session.transcript_path,
        )
        self._state = SessionState.RECORDING
        worker.start()

        with self._signal_handlers(install_signal_handlers):
            try:
                self._record_loop(session, outcome, chunk_queue, max_chunks)
            except KeyboardInterrupt:
                LOGGER.info("Recording interrupted by user; finishing up")
                self.control.request_stop()
            finally:
                self._state = SessionState.DRAINING
                LOGGER.info("Waiting for %d queued chunk(s) to finish", session.queued)
                chunk_queue.close()
                worker.join()
                self._state = SessionState.TERMINATED

        if session.queued > 0:
            outcome.transcript_path = session.transcript_path
            LOGGER.info("Transcription saved to: %s", session.transcript_path)
        else:
            LOGGER.info("No chunks were recorded; no transcript produced")
        return outcome

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _record_loop(
        self,
        session: Session,
        outcome: SessionOutcome,
        chunk_queue: ChunkQueue,
        max_chunks: Optional[int],
    ) -> None:
        duration = self.settings.chunk_duration_seconds
        while True:
            if self.control.should_stop:
                LOGGER.info("Stop requested; no further chunks will be recorded")
                return
            if max_chunks is not None and session.next_sequence > max_chunks:
                LOGGER.info("Recorded the requested %d chunk(s)", max_chunks)
                return

            sequence = session.next_sequence
            chunk = Chunk(
                sequence=sequence,
                audio_path=self.chunk_path(session, sequence),
                duration=duration,
            )
            outcome.chunks.append(chunk)
            LOGGER.info("Recording chunk %d (%d seconds)", sequence, duration)

            try:
                self.recorder.capture(chunk.audio_path, duration, stop_event=self.control.stop_event)
            except KeyboardInterrupt:
                LOGGER.info("Recording interrupted by user; discarding partial chunk %d", sequence)
                self.control.request_stop()
                self._discard(chunk)
                return
            except CaptureError as exc:
                if self.control.should_stop:
                    LOGGER.warning("Recording of chunk %d ended with an error while stopping: %s", sequence, exc)
                    self._discard(chunk)
                    return
                LOGGER.error("Recording error for chunk %d: %s", sequence, exc)
                chunk.status = ChunkStatus.FAILED
                chunk.error = str(exc)
                outcome.error = f"Recording error for chunk {sequence}: {exc}"
                self._notify(chunk)
                return

            if self.control.should_stop:
                LOGGER.info("Recording interrupted; discarding partial chunk %d", sequence)
                self._discard(chunk)
                return

            chunk.status = ChunkStatus.QUEUED
            chunk_queue.put(chunk)
            session.queued += 1
            session.next_sequence += 1

    def _discard(self, chunk: Chunk) -> None:
        chunk.status = ChunkStatus.SKIPPED
        with contextlib.suppress(OSError):
            chunk.audio_path.unlink(missing_ok=True)
        self._notify(chunk)

    def _notify(self, chunk: Chunk) -> None:
        if self._on_chunk is not None:
            try:
                self._on_chunk(chunk)
            except Exception:  # pragma: no cover - callbacks should not break pipeline
                LOGGER.exception("Chunk callback raised an exception")

    @contextlib.contextmanager
    def _signal_handlers(self, enabled: bool) -> Iterator[None]:
        if not enabled or threading.current_thread() is not threading.main_thread():
            yield
            return

        def _handle(signum, _frame) -> None:
            LOGGER.info("Received signal %s; stopping recording", signal.Signals(signum).name)
            self.control.request_stop()

        previous = {}
        for signum in _STOP_SIGNALS:
            previous[signum] = signal.signal(signum, _handle)
        try:
            yield
        finally:
            for signum, handler in previous.items():
                signal.signal(signum, handler)


__all__ = [
    "RecordingControl",
    "SessionController",
    "SessionOutcome",
    "SessionState",
]
