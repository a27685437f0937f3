"""Schema helpers for the tanuki settings file."""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from jsonschema import Draft202012Validator

from ..config import (
    DEFAULT_ASSETS_PATH,
    DEFAULT_CONFLICT_BACKOFF,
    DEFAULT_CONFLICT_RETRIES,
    DEFAULT_DOCSTORE_PATH,
    DEFAULT_HEARTBEAT_MS,
    DEFAULT_SQLITE_PATH,
)

RECORD_BACKENDS = ("sqlite", "document")

SETTINGS_SCHEMA: dict[str, Any] = {
    "$id": "tanuki/settings.schema.json",
    "type": "object",
    "required": ["record_backend", "sqlite_path", "docstore_path", "assets_path"],
    "properties": {
        "record_backend": {"type": "string", "enum": list(RECORD_BACKENDS)},
        "sqlite_path": {"type": "string", "minLength": 1},
        "docstore_path": {"type": "string", "minLength": 1},
        "assets_path": {"type": "string", "minLength": 1},
        "heartbeat_ms": {"type": "integer", "minimum": 0},
        "conflict_retries": {"type": "integer", "minimum": 0},
        "conflict_backoff": {"type": "number", "minimum": 0},
        "log_level": {
            "type": "string",
            "enum": ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        },
    },
    "additionalProperties": False,
}

DEFAULT_SETTINGS: dict[str, Any] = {
    "record_backend": "sqlite",
    "sqlite_path": str(DEFAULT_SQLITE_PATH),
    "docstore_path": str(DEFAULT_DOCSTORE_PATH),
    "assets_path": str(DEFAULT_ASSETS_PATH),
    "heartbeat_ms": DEFAULT_HEARTBEAT_MS,
    "conflict_retries": DEFAULT_CONFLICT_RETRIES,
    "conflict_backoff": DEFAULT_CONFLICT_BACKOFF,
    "log_level": "INFO",
}

_validator = Draft202012Validator(SETTINGS_SCHEMA)


def merge_with_defaults(data: dict[str, Any] | None) -> dict[str, Any]:
    """Merge *data* with :data:`DEFAULT_SETTINGS` and validate the result."""

    merged = deepcopy(DEFAULT_SETTINGS)
    if data:
        for key, value in data.items():
            if key == "log_level" and isinstance(value, str):
                value = value.upper()
            merged[key] = value
    _validator.validate(merged)
    return merged


def validate_settings(data: dict[str, Any]) -> None:
    """Validate *data* against the settings schema."""

    _validator.validate(data)


__all__ = ["DEFAULT_SETTINGS", "RECORD_BACKENDS", "SETTINGS_SCHEMA", "merge_with_defaults", "validate_settings"]
