"""Typer CLI entry point for the transcriber."""

from __future__ import annotations

import logging
import math
import os
import platform
import sys
from pathlib import Path
from typing import List, Optional

import typer

from . import __version__
from .config import (
    EnvironmentSettingError,
    Settings,
    clear_environment_setting,
    get_settings,
    list_environment_settings,
    update_environment_setting,
)
from .core.audio.base import CaptureError
from .core.audio.devices import default_device, detect_platform, input_format, input_target
from .core.audio.factory import create_recorder
from .core.pipeline.orchestrator import SessionController, SessionOutcome
from .data.models import Chunk, ChunkStatus
from .logging import configure_logging, get_logger
from .services.factory import ServiceConfigurationError, resolve_transcription_backend
from .services.transcription.base import TranscriptionError

app = typer.Typer(help="Record audio in chunks and transcribe it while recording")
LOGGER = get_logger(__name__)


def _chunks_for_duration(duration: Optional[float], chunk_seconds: int) -> Optional[int]:
    if duration is None or duration <= 0:
        return None
    return max(math.ceil(duration / chunk_seconds), 1)


def _apply_overrides(settings: Settings, **overrides) -> Settings:
    update = {key: value for key, value in overrides.items() if value is not None}
    if not update:
        return settings
    # Overrides go through the same field constraints as the environment.
    return Settings.model_validate({**settings.model_dump(), **update})


def _echo_chunk(chunk: Chunk) -> None:
    if chunk.status is ChunkStatus.APPENDED:
        typer.echo(f"Chunk {chunk.sequence}: appended")
    elif chunk.status is ChunkStatus.SKIPPED:
        typer.echo(f"Chunk {chunk.sequence}: skipped")
    else:
        typer.echo(f"Chunk {chunk.sequence}: failed ({chunk.error})", err=True)


def _report(outcome: SessionOutcome) -> None:
    typer.echo(
        f"Chunks appended: {outcome.count(ChunkStatus.APPENDED)}, "
        f"skipped: {outcome.count(ChunkStatus.SKIPPED)}, "
        f"failed: {outcome.count(ChunkStatus.FAILED)}"
    )
    if outcome.transcript_path is not None:
        typer.echo(f"Transcription saved to: {outcome.transcript_path}")
    else:
        typer.echo("No transcript was produced.")


@app.command()
def run(
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for the transcript"),
    device: Optional[str] = typer.Option(None, help="FFmpeg input device; defaults to the platform default"),
    backend: str = typer.Option("whisper", help="Transcription backend: whisper/dummy"),
    chunk_seconds: Optional[int] = typer.Option(None, help="Length of each recorded chunk in seconds"),
    min_unique_words: Optional[int] = typer.Option(None, help="Skip chunks with fewer distinct words"),
    duration: Optional[float] = typer.Option(None, help="Total recording time in seconds; default waits for Ctrl+C"),
    remove_audio: Optional[bool] = typer.Option(
        None, "--remove-audio/--keep-audio", help="Delete chunk audio after transcription; defaults to the configured value"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Record and transcribe until interrupted."""

    configure_logging(logging.DEBUG if verbose else logging.INFO)
    try:
        settings = _apply_overrides(
            get_settings(),
            output_dir=output_dir,
            chunk_duration_seconds=chunk_seconds,
            min_unique_words=min_unique_words,
            remove_audio_on_success=remove_audio,
        )
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        transcription = resolve_transcription_backend(backend, settings)
    except ServiceConfigurationError as exc:
        raise typer.BadParameter(str(exc)) from exc

    recorder = create_recorder(settings, device=device)
    controller = SessionController(recorder, transcription, settings, on_chunk=_echo_chunk)
    session = controller.new_session()

    typer.echo(f"PID: {os.getpid()} (stop with Ctrl+C or `kill -TERM {os.getpid()}`)")
    typer.echo(
        f"Run this for live transcription every {settings.chunk_duration_seconds} secs: "
        f"`tail -f {session.transcript_path}`"
    )

    try:
        outcome = controller.run(
            max_chunks=_chunks_for_duration(duration, settings.chunk_duration_seconds),
            session_id=session.id,
        )
    except (CaptureError, TranscriptionError) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    _report(outcome)
    if outcome.failed:
        typer.echo(f"Error: {outcome.error}", err=True)
        raise typer.Exit(code=1)


def _parse_assignment(value: str) -> tuple[str, str]:
    field, sep, raw = value.partition("=")
    if not sep or not field.strip():
        raise typer.BadParameter(f"Expected FIELD=VALUE, got '{value}'")
    return field.strip(), raw


@app.command()
def config(
    set_values: List[str] = typer.Option([], "--set", help="Persist FIELD=VALUE to the .env file"),
    unset: List[str] = typer.Option([], "--unset", help="Remove a persisted override"),
) -> None:
    """Show, update or clear configuration."""

    try:
        for assignment in set_values:
            field, raw = _parse_assignment(assignment)
            update_environment_setting(field, raw)
        for field in unset:
            clear_environment_setting(field)
    except EnvironmentSettingError as exc:
        raise typer.BadParameter(str(exc)) from exc

    for entry in list_environment_settings():
        marker = f" (overridden, {entry.source})" if entry.overridden else ""
        typer.echo(f"{entry.env_name}={entry.value}{marker}")


@app.command()
def devices() -> None:
    """Show the FFmpeg input used for recording on this platform."""

    settings = get_settings()
    current = detect_platform()
    device = settings.audio_device or default_device(current)
    typer.echo(f"Platform: {current}")
    typer.echo(f"Input format: {input_format(current)}")
    typer.echo(f"Default device: {default_device(current)}")
    typer.echo(f"Recording from: {input_target(current, device)}")


@app.command()
def version() -> None:
    """Show version information."""

    typer.echo(f"transcriber version {__version__}")
    typer.echo(f"Python {platform.python_version()} on {sys.platform}/{platform.machine()}")


if __name__ == "__main__":  # pragma: no cover
    app()
