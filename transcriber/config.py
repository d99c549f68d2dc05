"""Global configuration using Pydantic settings."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_MODEL_NAME = "ggml-large-v3-turbo-q5_0"


def _default_model_path() -> Path:
    return Path.home() / ".transcriber" / f"{DEFAULT_MODEL_NAME}.bin"


def _default_temp_dir() -> Path:
    return Path(tempfile.gettempdir()) / "transcriber"


class Settings(BaseSettings):
    """Application wide settings loaded from environment variables."""

    model_path: Path = Field(default_factory=_default_model_path)
    language: str = "en"
    temp_dir: Path = Field(default_factory=_default_temp_dir)
    output_dir: Path = Field(default_factory=lambda: Path("."))
    output_format: str = "txt"
    whisper_binary: str = "whisper-cli"
    ffmpeg_binary: str = "ffmpeg"
    audio_device: Optional[str] = None
    audio_extension: str = "mp3"
    chunk_duration_seconds: int = Field(default=30, gt=0)
    min_unique_words: int = Field(default=5, ge=0)
    remove_audio_on_success: bool = True
    queue_size: int = Field(default=2, ge=1)
    stop_grace_seconds: float = Field(default=3.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBER_",
        env_file=".env",
        case_sensitive=False,
        protected_namespaces=(),
    )


_settings: Optional[Settings] = None


_MODEL_CONFIG: Dict[str, Any] = dict(Settings.model_config or {})
_ENV_PREFIX: str = (_MODEL_CONFIG.get("env_prefix") or "").upper()
_CASE_SENSITIVE: bool = bool(_MODEL_CONFIG.get("case_sensitive", True))
_ENV_FILE = _MODEL_CONFIG.get("env_file") or ".env"
_ENV_PATH = Path(_ENV_FILE)


@dataclass
class EnvironmentSetting:
    """Metadata about a configuration option backed by an environment variable."""

    field: str
    env_name: str
    value: Any
    default: Any
    annotation: Any
    source: str = "default"

    @property
    def overridden(self) -> bool:
        return self.source != "default"


class EnvironmentSettingError(RuntimeError):
    """Raised when environment-backed configuration updates fail."""


def _env_key(field: str) -> str:
    key = f"{_ENV_PREFIX}{field}" if _ENV_PREFIX else field
    return key if _CASE_SENSITIVE else key.upper()


def _field_default(field_info) -> Any:
    if field_info.default_factory is not None:  # type: ignore[truthy-function]
        return field_info.default_factory()
    return field_info.get_default()


def _is_path_field(field: str) -> bool:
    annotation = Settings.model_fields[field].annotation
    return isinstance(annotation, type) and issubclass(annotation, Path)


def _load_env_file() -> Iterable[str]:
    if not _ENV_PATH.exists():
        return []
    return _ENV_PATH.read_text(encoding="utf-8").splitlines()


def _quote(value: str) -> str:
    # Device names such as ":MacBook Pro Microphone" contain spaces and
    # Windows paths contain backslashes.
    if value and not any(char in value for char in " \t#'\"\\"):
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1].replace('\\"', '"').replace("\\\\", "\\")
    if len(value) >= 2 and value[0] == value[-1] == "'":
        return value[1:-1]
    return value


def _env_file_values() -> Dict[str, str]:
    values: Dict[str, str] = {}
    for line in _load_env_file():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            continue
        key, raw = stripped.split("=", 1)
        values[key.strip()] = _unquote(raw)
    return values


def _persist_env_value(env_name: str, value: Optional[str]) -> None:
    new_lines = []
    updated = False
    for line in _load_env_file():
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            new_lines.append(line)
            continue
        key = stripped.split("=", 1)[0].strip()
        if key != env_name:
            new_lines.append(line)
        elif value is not None and not updated:
            new_lines.append(f"{env_name}={_quote(value)}")
        # Duplicate keys collapse into the first assignment.
        updated = updated or key == env_name
    if not updated and value is not None:
        new_lines.append(f"{env_name}={_quote(value)}")

    if any(line.strip() for line in new_lines):
        _ENV_PATH.write_text("\n".join(new_lines) + "\n", encoding="utf-8")
    elif _ENV_PATH.exists():
        _ENV_PATH.unlink()


def _setting_source(env_name: str, file_values: Dict[str, str]) -> str:
    if env_name in os.environ:
        return "environment"
    if env_name in file_values:
        return "env file"
    return "default"


def list_environment_settings(settings: Optional[Settings] = None) -> Iterable[EnvironmentSetting]:
    """Return metadata for all environment-backed settings.

    Each entry records where its value came from: the process environment,
    the ``.env`` file or the built-in default.
    """

    settings = settings or get_settings()
    file_values = _env_file_values()
    for name, field in Settings.model_fields.items():
        env_name = _env_key(name)
        yield EnvironmentSetting(
            field=name,
            env_name=env_name,
            value=getattr(settings, name),
            default=_field_default(field),
            annotation=field.annotation,
            source=_setting_source(env_name, file_values),
        )


def _apply_setting_update(field: str, raw_value: Optional[str]) -> Settings:
    if field not in Settings.model_fields:
        raise EnvironmentSettingError(f"Unknown setting: {field}")

    env_name = _env_key(field)
    previous = os.environ.get(env_name)

    if raw_value is not None and _is_path_field(field):
        # "~/models/x.bin" is stored as an absolute path.
        raw_value = os.path.expanduser(raw_value.strip())

    if raw_value is None:
        os.environ.pop(env_name, None)
    else:
        os.environ[env_name] = raw_value

    try:
        new_settings = Settings()
    except ValidationError as exc:
        if previous is None:
            os.environ.pop(env_name, None)
        else:
            os.environ[env_name] = previous
        raise EnvironmentSettingError(str(exc)) from exc

    global _settings
    _settings = new_settings
    _persist_env_value(env_name, raw_value)
    return new_settings


def update_environment_setting(field: str, raw_value: str) -> Settings:
    """Update an environment setting and reload configuration."""

    return _apply_setting_update(field, raw_value)


def clear_environment_setting(field: str) -> Settings:
    """Remove an environment override for the given field and reload configuration."""

    return _apply_setting_update(field, None)


def get_settings() -> Settings:
    """Return a singleton instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


__all__ = [
    "DEFAULT_MODEL_NAME",
    "Settings",
    "EnvironmentSetting",
    "EnvironmentSettingError",
    "clear_environment_setting",
    "get_settings",
    "list_environment_settings",
    "update_environment_setting",
]
