"""Conversions between ``datetime`` values and stored epoch milliseconds."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from dateutil import parser as date_parser

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# Earliest instant used when a lower bound is not supplied.
EPOCH_MIN = datetime(1, 1, 1, tzinfo=timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive values as UTC and convert aware ones to UTC."""

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_millis(value: datetime) -> int:
    delta = ensure_utc(value) - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def from_millis(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


def optional_millis(value: Optional[datetime]) -> Optional[int]:
    return None if value is None else to_millis(value)


def optional_datetime(value: Optional[int]) -> Optional[datetime]:
    return None if value is None else from_millis(value)


def parse_datetime(text: str) -> datetime:
    """Parse user supplied date text such as ``2024-05-01`` or ISO 8601."""

    try:
        return ensure_utc(date_parser.parse(text))
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"Unrecognised date: {text!r}") from exc
