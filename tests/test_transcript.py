from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from transcriber.data.models import TranscriptSegment, format_timestamp
from transcriber.data.transcript import TranscriptWriter


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0:00"),
        (30, "0:30"),
        (90, "1:30"),
        (600, "10:00"),
        (3599, "59:59"),
        (3600, "1:00:00"),
        (3690, "1:01:30"),
        (36005, "10:00:05"),
    ],
)
def test_format_timestamp(seconds: int, expected: str) -> None:
    assert format_timestamp(seconds) == expected


@pytest.mark.parametrize("sequence", [1, 2, 7, 120, 121])
@pytest.mark.parametrize("duration", [1, 30, 45])
def test_header_is_derived_from_sequence(sequence: int, duration: int) -> None:
    segment = TranscriptSegment.for_chunk(sequence, duration, "text")

    start = format_timestamp((sequence - 1) * duration)
    end = format_timestamp(sequence * duration)
    assert segment.header == f"[{start} – {end}]"


def test_segment_rejects_inverted_range() -> None:
    with pytest.raises(ValidationError):
        TranscriptSegment(sequence=1, start=30, end=0, text="x")


def test_first_segment_has_no_separator(tmp_path: Path) -> None:
    path = tmp_path / "run.txt"
    writer = TranscriptWriter(path, chunk_duration=30)

    writer.append("hello there", 1)

    assert path.read_text(encoding="utf-8") == "[0:00 – 0:30]\nhello there"


def test_later_segments_are_separated_by_blank_line(tmp_path: Path) -> None:
    path = tmp_path / "run.txt"
    writer = TranscriptWriter(path, chunk_duration=30)

    writer.append("first block\n", 2)
    writer.append("second block\n", 5)

    assert path.read_text(encoding="utf-8") == (
        "[0:30 – 1:00]\nfirst block\n"
        "\n\n"
        "[2:00 – 2:30]\nsecond block\n"
    )
    assert [segment.sequence for segment in writer.segments] == [2, 5]


def test_out_of_order_append_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "run.txt"
    writer = TranscriptWriter(path, chunk_duration=30)
    writer.append("one two three", 3)

    with pytest.raises(ValueError):
        writer.append("late chunk", 2)
    with pytest.raises(ValueError):
        writer.append("same chunk", 3)

    assert path.read_text(encoding="utf-8") == "[1:00 – 1:30]\none two three"


def test_hour_long_sessions_switch_format(tmp_path: Path) -> None:
    writer = TranscriptWriter(tmp_path / "run.txt", chunk_duration=30)

    segment = writer.append("late in the session", 121)

    assert segment.header == "[1:00:00 – 1:00:30]"


def test_writer_requires_positive_duration(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        TranscriptWriter(tmp_path / "run.txt", chunk_duration=0)
