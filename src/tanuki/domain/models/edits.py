"""Change requests applied to existing assets."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional

from .core import Asset, Location


@dataclass
class LocationInput:
    """Requested location changes.

    ``None`` leaves a field unchanged, an empty string clears it and any
    other value replaces it.
    """

    label: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None


def merge_location(current: Optional[Location], incoming: Optional[LocationInput]) -> Optional[Location]:
    """Apply *incoming* to *current*, returning None if nothing remains."""

    if incoming is None:
        return current
    merged = Location() if current is None else Location(current.label, current.city, current.region)
    for name in ("label", "city", "region"):
        value = getattr(incoming, name)
        if value is not None:
            setattr(merged, name, value.strip() or None)
    return merged if merged.has_values() else None


@dataclass
class AssetInput:
    """Field overwrites for a single asset; ``None`` leaves a field alone.

    ``tags`` replaces the existing tags, even when empty. ``caption`` may
    contain ``#tags`` and an ``@location`` which only add to the asset.
    ``datetime`` sets the user date and can never clear it.
    """

    key: str
    tags: Optional[List[str]] = None
    caption: Optional[str] = None
    location: Optional[LocationInput] = None
    datetime: Optional[datetime] = None
    media_type: Optional[str] = None
    filename: Optional[str] = None

    def has_values(self) -> bool:
        return (
            bool(self.tags)
            or self.caption is not None
            or self.location is not None
            or self.datetime is not None
            or bool(self.media_type)
            or bool(self.filename)
        )


class LocationField(Enum):
    LABEL = "label"
    CITY = "city"
    REGION = "region"


class Operation(ABC):
    """A single modification applied to an asset by bulk edits."""

    @abstractmethod
    def perform(self, asset: Asset) -> bool:
        """Modify *asset* in place and return True if anything changed."""


@dataclass
class TagAdd(Operation):
    name: str

    def perform(self, asset: Asset) -> bool:
        if any(tag.lower() == self.name.lower() for tag in asset.tags):
            return False
        asset.tags.append(self.name)
        return True


@dataclass
class TagRemove(Operation):
    name: str

    def perform(self, asset: Asset) -> bool:
        kept = [tag for tag in asset.tags if tag.lower() != self.name.lower()]
        if len(kept) == len(asset.tags):
            return False
        asset.tags = kept
        return True


@dataclass
class LocationSetField(Operation):
    field: LocationField
    value: str

    def perform(self, asset: Asset) -> bool:
        location = asset.location or Location()
        if getattr(location, self.field.value) == self.value:
            return False
        setattr(location, self.field.value, self.value or None)
        asset.location = location if location.has_values() else None
        return True


@dataclass
class LocationClearField(Operation):
    field: LocationField

    def perform(self, asset: Asset) -> bool:
        if asset.location is None or getattr(asset.location, self.field.value) is None:
            return False
        setattr(asset.location, self.field.value, None)
        if not asset.location.has_values():
            asset.location = None
        return True


@dataclass
class DatetimeSet(Operation):
    value: datetime

    def perform(self, asset: Asset) -> bool:
        if asset.best_date == self.value:
            return False
        asset.user_date = self.value
        return True


class DatetimeClear(Operation):
    def perform(self, asset: Asset) -> bool:
        if asset.user_date is None:
            return False
        asset.user_date = None
        return True


@dataclass
class DatetimeAddDays(Operation):
    days: int

    def perform(self, asset: Asset) -> bool:
        if self.days == 0:
            return False
        asset.user_date = asset.best_date + timedelta(days=self.days)
        return True
