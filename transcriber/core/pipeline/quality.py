"""Quality filter deciding whether a chunk transcription is worth keeping."""

from __future__ import annotations


def unique_word_count(text: str) -> int:
    return len({word.casefold() for word in text.split()})


def should_skip_chunk(text: str, min_unique_words: int) -> bool:
    """Return ``True`` when ``text`` has fewer distinct words than required.

    Silence and background noise tend to come back from the engine as a
    handful of repeated filler tokens, so those chunks are left out.
    """

    return unique_word_count(text) < min_unique_words


__all__ = ["should_skip_chunk", "unique_word_count"]
