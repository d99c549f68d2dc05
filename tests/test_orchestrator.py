from __future__ import annotations

import signal
import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import pytest

from transcriber.config import Settings
from transcriber.core.audio.base import CaptureError, CaptureInfo, ChunkRecorder
from transcriber.core.pipeline.orchestrator import (
    RecordingControl,
    SessionController,
    SessionState,
)
from transcriber.data.models import ChunkStatus
from transcriber.services.transcription.base import ModelNotFoundError, TranscriptionService


def _sequence(path: Path) -> int:
    return int(path.stem.rsplit("_", 1)[1])


class FakeRecorder(ChunkRecorder):
    """Writes a small file per chunk instead of running ffmpeg."""

    def __init__(
        self,
        *,
        interrupt_on: Optional[int] = None,
        fail_on: Optional[int] = None,
        empty_on: Iterable[int] = (),
        raise_signal_on: Optional[int] = None,
        keyboard_interrupt_on: Optional[int] = None,
    ) -> None:
        self.info = CaptureInfo(device="fake", input_format="lavfi", platform="linux")
        self.interrupt_on = interrupt_on
        self.fail_on = fail_on
        self.empty_on = set(empty_on)
        self.raise_signal_on = raise_signal_on
        self.keyboard_interrupt_on = keyboard_interrupt_on
        self.captured: List[int] = []
        self.durations: List[float] = []

    def capture(self, target: Path, duration: float, stop_event: Optional[threading.Event] = None) -> None:
        sequence = _sequence(target)
        self.captured.append(sequence)
        self.durations.append(duration)
        if sequence == self.fail_on:
            raise CaptureError("device vanished")
        target.write_bytes(b"" if sequence in self.empty_on else b"audio-bytes")
        if sequence == self.keyboard_interrupt_on:
            raise KeyboardInterrupt
        if sequence == self.interrupt_on and stop_event is not None:
            stop_event.set()
        if sequence == self.raise_signal_on and stop_event is not None:
            signal.raise_signal(signal.SIGINT)
            for _ in range(100):
                if stop_event.is_set():
                    break
                time.sleep(0.01)


class ScriptedTranscription(TranscriptionService):
    def __init__(self, texts: Dict[int, str], delays: Optional[Dict[int, float]] = None) -> None:
        self.texts = texts
        self.delays = delays or {}
        self.calls: List[int] = []

    def transcribe(self, audio_path: Path, output_base: Path) -> Path:
        sequence = _sequence(audio_path)
        self.calls.append(sequence)
        time.sleep(self.delays.get(sequence, 0))
        output = self.output_path_for(output_base)
        output.write_text(self.texts.get(sequence, f"default words for chunk number {sequence}"), encoding="utf-8")
        return output


class MissingModelTranscription(ScriptedTranscription):
    def validate(self) -> None:
        raise ModelNotFoundError("Model file not found: /nowhere/model.bin")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        temp_dir=tmp_path / "tmp",
        output_dir=tmp_path / "out",
        chunk_duration_seconds=30,
        min_unique_words=5,
        queue_size=2,
    )


def test_session_appends_filters_and_timestamps_by_sequence(settings: Settings) -> None:
    recorder = FakeRecorder()
    transcription = ScriptedTranscription(
        {
            1: "the cat sat on the mat and the cat slept",
            2: "um um um",
            3: "then the dog woke up and barked loudly",
        }
    )
    controller = SessionController(recorder, transcription, settings)

    outcome = controller.run(max_chunks=3, session_id="test", install_signal_handlers=False)

    assert controller.state is SessionState.TERMINATED
    assert outcome.error is None
    assert outcome.transcript_path == settings.output_dir / "run_test.txt"
    assert recorder.captured == [1, 2, 3]
    assert recorder.durations == [30, 30, 30]
    assert [chunk.status for chunk in outcome.chunks] == [
        ChunkStatus.APPENDED,
        ChunkStatus.SKIPPED,
        ChunkStatus.APPENDED,
    ]
    assert outcome.transcript_path.read_text(encoding="utf-8") == (
        "[0:00 – 0:30]\nthe cat sat on the mat and the cat slept"
        "\n\n"
        "[1:00 – 1:30]\nthen the dog woke up and barked loudly"
    )
    assert list((settings.temp_dir).iterdir()) == []


def test_interrupt_mid_capture_drains_queued_chunks(settings: Settings) -> None:
    recorder = FakeRecorder(interrupt_on=4)
    transcription = ScriptedTranscription({}, delays={1: 0.05, 2: 0.05, 3: 0.05})
    controller = SessionController(recorder, transcription, settings)

    outcome = controller.run(max_chunks=6, session_id="test", install_signal_handlers=False)

    assert recorder.captured == [1, 2, 3, 4]
    assert transcription.calls == [1, 2, 3]
    statuses = {chunk.sequence: chunk.status for chunk in outcome.chunks}
    assert statuses == {
        1: ChunkStatus.APPENDED,
        2: ChunkStatus.APPENDED,
        3: ChunkStatus.APPENDED,
        4: ChunkStatus.SKIPPED,
    }
    assert not (settings.temp_dir / "chunk_test_4.mp3").exists()
    content = outcome.transcript_path.read_text(encoding="utf-8")
    assert content.count("[") == 3
    assert "[1:00 – 1:30]" in content
    assert "chunk number 4" not in content


def test_single_empty_recording_does_not_abort_session(settings: Settings) -> None:
    recorder = FakeRecorder(empty_on=[2])
    transcription = ScriptedTranscription({})
    controller = SessionController(recorder, transcription, settings)

    outcome = controller.run(max_chunks=3, session_id="test", install_signal_handlers=False)

    assert [chunk.status for chunk in outcome.chunks] == [
        ChunkStatus.APPENDED,
        ChunkStatus.FAILED,
        ChunkStatus.APPENDED,
    ]
    assert transcription.calls == [1, 3]


def test_capture_failure_drains_then_reports_error(settings: Settings) -> None:
    recorder = FakeRecorder(fail_on=3)
    transcription = ScriptedTranscription({}, delays={1: 0.02, 2: 0.02})
    controller = SessionController(recorder, transcription, settings)

    outcome = controller.run(max_chunks=6, session_id="test", install_signal_handlers=False)

    assert outcome.failed
    assert "device vanished" in outcome.error
    assert recorder.captured == [1, 2, 3]
    assert transcription.calls == [1, 2]
    assert outcome.chunks[2].status is ChunkStatus.FAILED
    assert outcome.transcript_path is not None
    assert outcome.transcript_path.read_text(encoding="utf-8").count("[") == 2


def test_stop_before_first_chunk_produces_no_transcript(settings: Settings) -> None:
    control = RecordingControl()
    control.request_stop()
    recorder = FakeRecorder()
    controller = SessionController(recorder, ScriptedTranscription({}), settings, control=control)

    outcome = controller.run(session_id="test", install_signal_handlers=False)

    assert recorder.captured == []
    assert outcome.chunks == []
    assert outcome.transcript_path is None
    assert not (settings.output_dir / "run_test.txt").exists()


def test_missing_model_fails_before_recording(settings: Settings) -> None:
    recorder = FakeRecorder()
    controller = SessionController(recorder, MissingModelTranscription({}), settings)

    with pytest.raises(ModelNotFoundError):
        controller.run(max_chunks=2, session_id="test", install_signal_handlers=False)

    assert recorder.captured == []
    assert controller.state is SessionState.IDLE


def test_sigint_stops_session_and_restores_handler(settings: Settings) -> None:
    previous = signal.getsignal(signal.SIGINT)
    recorder = FakeRecorder(raise_signal_on=2)
    controller = SessionController(recorder, ScriptedTranscription({}), settings)

    outcome = controller.run(max_chunks=5, session_id="test")

    assert recorder.captured == [1, 2]
    assert controller.control.should_stop
    assert [chunk.status for chunk in outcome.chunks] == [ChunkStatus.APPENDED, ChunkStatus.SKIPPED]
    assert signal.getsignal(signal.SIGINT) is previous


def test_controller_runs_only_once(settings: Settings) -> None:
    controller = SessionController(FakeRecorder(), ScriptedTranscription({}), settings)
    controller.run(max_chunks=1, session_id="test", install_signal_handlers=False)

    with pytest.raises(RuntimeError):
        controller.run(max_chunks=1, session_id="again", install_signal_handlers=False)


def test_on_chunk_callback_sees_every_final_status(settings: Settings) -> None:
    seen: list = []
    recorder = FakeRecorder(interrupt_on=3)
    transcription = ScriptedTranscription({2: "nope"})
    controller = SessionController(recorder, transcription, settings, on_chunk=seen.append)

    controller.run(max_chunks=5, session_id="test", install_signal_handlers=False)

    assert sorted((chunk.sequence, chunk.status) for chunk in seen) == [
        (1, ChunkStatus.APPENDED),
        (2, ChunkStatus.SKIPPED),
        (3, ChunkStatus.SKIPPED),
    ]


def test_keyboard_interrupt_discards_partial_chunk(settings: Settings) -> None:
    seen: list = []
    recorder = FakeRecorder(keyboard_interrupt_on=2)
    controller = SessionController(recorder, ScriptedTranscription({}), settings, on_chunk=seen.append)

    outcome = controller.run(max_chunks=5, session_id="test", install_signal_handlers=False)

    assert recorder.captured == [1, 2]
    assert controller.control.should_stop
    assert controller.state is SessionState.TERMINATED
    assert outcome.error is None
    assert [chunk.status for chunk in outcome.chunks] == [ChunkStatus.APPENDED, ChunkStatus.SKIPPED]
    assert not (settings.temp_dir / "chunk_test_2.mp3").exists()
    assert sorted(chunk.sequence for chunk in seen) == [1, 2]
    assert outcome.transcript_path.read_text(encoding="utf-8").count("[") == 1
