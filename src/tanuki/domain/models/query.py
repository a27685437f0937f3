from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Set


class SortField(Enum):
    DATE = "date"
    IDENTIFIER = "identifier"
    FILENAME = "filename"
    MEDIA_TYPE = "media_type"


class SortOrder(Enum):
    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass
class SearchParams:
    """Search criteria - Fluent API for building query conditions.

    Every populated criterion must hold for an asset to match. Tags and
    locations are compared case-insensitively and each requested value must
    be present on the asset.
    """

    tags: Set[str] = field(default_factory=set)
    locations: Set[str] = field(default_factory=set)
    media_type: Optional[str] = None
    filename: Optional[str] = None
    after: Optional[datetime] = None
    before: Optional[datetime] = None
    sort_field: Optional[SortField] = None
    sort_order: Optional[SortOrder] = None

    def with_tags(self, *tags: str):
        self.tags.update(tags)
        return self

    def with_locations(self, *locations: str):
        self.locations.update(locations)
        return self

    def with_media_type(self, media_type: str):
        self.media_type = media_type
        return self

    def with_filename(self, filename: str):
        self.filename = filename
        return self

    def between(self, after: Optional[datetime] = None, before: Optional[datetime] = None):
        """Fluent API: half-open date window ``[after, before)``"""
        self.after = after
        self.before = before
        return self

    def sorted_by(self, sort_field: SortField, sort_order: SortOrder = SortOrder.ASCENDING):
        self.sort_field = sort_field
        self.sort_order = sort_order
        return self

    def is_empty(self) -> bool:
        return not (
            self.tags or self.locations or self.media_type or self.filename or self.after or self.before
        )


@dataclass
class PendingParams:
    """Criteria for assets still awaiting curation (no tags, caption or label)."""

    after: Optional[datetime] = None
    sort_field: Optional[SortField] = None
    sort_order: Optional[SortOrder] = None
