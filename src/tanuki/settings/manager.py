"""Build the validated settings object from a file and the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

from jsonschema import ValidationError

from ..config import SETTINGS_ENV_PREFIX, SETTINGS_FILE_ENV
from ..errors import SettingsLoadError, SettingsValidationError
from ..utils.jsonio import read_json
from .schema import DEFAULT_SETTINGS, SETTINGS_SCHEMA, merge_with_defaults


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration, built once and injected."""

    record_backend: str
    sqlite_path: Path
    docstore_path: Path
    assets_path: Path
    heartbeat_ms: int
    conflict_retries: int
    conflict_backoff: float
    log_level: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        return cls(
            record_backend=data["record_backend"],
            sqlite_path=Path(data["sqlite_path"]),
            docstore_path=Path(data["docstore_path"]),
            assets_path=Path(data["assets_path"]),
            heartbeat_ms=data["heartbeat_ms"],
            conflict_retries=data["conflict_retries"],
            conflict_backoff=float(data["conflict_backoff"]),
            log_level=data["log_level"],
        )


def _coerce(key: str, raw: str) -> Any:
    """Convert an environment string to the type the schema expects."""

    expected = SETTINGS_SCHEMA["properties"][key]["type"]
    try:
        if expected == "integer":
            return int(raw)
        if expected == "number":
            return float(raw)
    except ValueError as exc:
        raise SettingsValidationError(f"{SETTINGS_ENV_PREFIX}{key.upper()}: expected {expected}, got {raw!r}") from exc
    return raw


def environment_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``TANUKI_<KEY>`` variables for every known setting."""

    overrides: dict[str, Any] = {}
    for key in DEFAULT_SETTINGS:
        name = f"{SETTINGS_ENV_PREFIX}{key.upper()}"
        if environ.get(name):
            overrides[key] = _coerce(key, environ[name])
    return overrides


def load_settings(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    """Load settings: defaults, then the JSON file, then environment variables.

    The file is optional; when *path* is not given, ``TANUKI_SETTINGS`` may
    name one.
    """

    environ = os.environ if environ is None else environ
    if path is None and environ.get(SETTINGS_FILE_ENV):
        path = Path(environ[SETTINGS_FILE_ENV])

    payload: dict[str, Any] = {}
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise SettingsLoadError(f"Settings file not found: {path}")
        payload = read_json(path)
        if not isinstance(payload, dict):
            raise SettingsLoadError(f"Settings file must hold a JSON object: {path}")
    payload.update(environment_overrides(environ))

    try:
        data = merge_with_defaults(payload)
    except ValidationError as exc:
        location = ".".join(str(part) for part in exc.absolute_path) or "settings"
        raise SettingsValidationError(f"{location}: {exc.message}") from exc
    return Settings.from_dict(data)


__all__ = ["Settings", "environment_overrides", "load_settings"]
