"""Chunked real-time audio transcription driven by ffmpeg and whisper.cpp."""

__version__ = "0.1.0"
