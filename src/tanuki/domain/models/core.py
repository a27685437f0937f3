from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from tanuki.utils.pathutils import decode_identifier


@dataclass
class Location:
    """Where an asset was captured: a user label plus city and region."""

    label: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None

    def __post_init__(self) -> None:
        # Blank parts mean "absent"; never keep empty strings around.
        self.label = self.label or None
        self.city = self.city or None
        self.region = self.region or None

    @classmethod
    def parse(cls, text: str) -> Location:
        """Parse free text into a location.

        Accepted shapes are ``label``, ``label; city``, ``label; city, region``
        and ``city, region``. Anything else is taken verbatim as the label.
        """

        if not text:
            return cls()
        if ";" in text:
            label_tail = text.split(";")
            if len(label_tail) == 2:
                label, rest = label_tail
                if "," not in rest:
                    return cls(label.strip(), rest.strip())
                city_region = rest.split(",")
                if len(city_region) == 2:
                    return cls(label.strip(), city_region[0].strip(), city_region[1].strip())
        elif "," in text:
            city_region = text.split(",")
            if len(city_region) == 2:
                return cls(None, city_region[0].strip(), city_region[1].strip())
        return cls(text)

    def __str__(self) -> str:
        if self.label and self.city and self.region:
            return f"{self.label}; {self.city}, {self.region}"
        if self.city and self.region:
            return f"{self.city}, {self.region}"
        if self.label and self.city:
            return f"{self.label}; {self.city}"
        if self.label and self.region:
            return f"{self.label}; , {self.region}"
        if self.label:
            return self.label
        if self.city:
            return f"; {self.city}"
        if self.region:
            return f", {self.region}"
        return ""

    def has_values(self) -> bool:
        return self.label is not None or self.city is not None or self.region is not None

    def parts(self) -> List[str]:
        """Return the populated fields in label, city, region order."""
        return [part for part in (self.label, self.city, self.region) if part]

    @classmethod
    def from_parts(
        cls,
        label: Optional[str],
        city: Optional[str],
        region: Optional[str],
    ) -> Optional[Location]:
        """Build a location, returning None when every part is blank."""
        location = cls(label, city, region)
        return location if location.has_values() else None


def normalize_tags(tags: Iterable[str]) -> List[str]:
    """Trim *tags*, drop blanks and case-insensitive duplicates (first wins)."""

    seen: set[str] = set()
    result: List[str] = []
    for tag in tags:
        tag = tag.strip()
        folded = tag.lower()
        if not tag or folded in seen:
            continue
        seen.add(folded)
        result.append(tag)
    return result


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Asset:
    key: str
    checksum: str = ""
    filename: str = ""
    byte_length: int = 0
    media_type: str = ""
    tags: List[str] = field(default_factory=list)
    import_date: datetime = field(default_factory=_utcnow)
    caption: Optional[str] = None
    location: Optional[Location] = None
    user_date: Optional[datetime] = None
    original_date: Optional[datetime] = None

    @property
    def best_date(self) -> datetime:
        return best_date(self)

    @property
    def filepath(self) -> str:
        """Relative path of the asset within the blob store."""
        return decode_identifier(self.key)


def best_date(asset: Asset) -> datetime:
    """User date, else original date, else import date."""

    if asset.user_date is not None:
        return asset.user_date
    if asset.original_date is not None:
        return asset.original_date
    return asset.import_date


@dataclass(frozen=True)
class AttributeCount:
    label: str
    count: int


@dataclass
class SearchResult:
    asset_id: str
    filename: str
    media_type: str
    location: Optional[Location]
    datetime: datetime

    @classmethod
    def from_asset(cls, asset: Asset) -> SearchResult:
        return cls(
            asset_id=asset.key,
            filename=asset.filename,
            media_type=asset.media_type,
            location=asset.location,
            datetime=best_date(asset),
        )
