from .core import (
    Asset,
    AttributeCount,
    Location,
    SearchResult,
    best_date,
    normalize_tags,
)
from .edits import (
    AssetInput,
    DatetimeAddDays,
    DatetimeClear,
    DatetimeSet,
    LocationClearField,
    LocationField,
    LocationInput,
    LocationSetField,
    Operation,
    TagAdd,
    TagRemove,
    merge_location,
)
from .query import PendingParams, SearchParams, SortField, SortOrder

__all__ = [
    "Asset",
    "AssetInput",
    "AttributeCount",
    "DatetimeAddDays",
    "DatetimeClear",
    "DatetimeSet",
    "Location",
    "LocationClearField",
    "LocationField",
    "LocationInput",
    "LocationSetField",
    "Operation",
    "PendingParams",
    "SearchParams",
    "SearchResult",
    "SortField",
    "SortOrder",
    "TagAdd",
    "TagRemove",
    "best_date",
    "merge_location",
    "normalize_tags",
]
