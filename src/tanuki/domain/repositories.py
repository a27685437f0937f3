from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from .models import Asset, AttributeCount, Location, SearchResult

# Cursor value returned by fetch_assets() once the corpus is exhausted.
DONE_CURSOR = "done"


class IRecordRepository(ABC):
    """Storage port for asset records.

    Every backend must return identical results for identical data. Lookups
    that find nothing return ``None``; that is the normal way callers detect
    duplicates and is never an error.
    """

    def initialize(self) -> None:
        """Prepare schema and indices; must succeed before any query."""

    def close(self) -> None:
        """Release connections and background workers."""

    @abstractmethod
    def count_assets(self) -> int:
        """Number of asset records (administrative records excluded)"""
        pass

    @abstractmethod
    def get_asset_by_id(self, key: str) -> Optional[Asset]:
        pass

    @abstractmethod
    def get_asset_by_digest(self, checksum: str) -> Optional[Asset]:
        """Find the canonical asset for a content checksum"""
        pass

    @abstractmethod
    def all_tags(self) -> List[AttributeCount]:
        """Lower-cased tags with the number of assets carrying each"""
        pass

    @abstractmethod
    def all_locations(self) -> List[AttributeCount]:
        """Lower-cased location parts (label, city, region counted separately)"""
        pass

    @abstractmethod
    def raw_locations(self) -> List[Location]:
        """Distinct (label, city, region) records, excluding empty ones"""
        pass

    @abstractmethod
    def all_years(self) -> List[AttributeCount]:
        """Years of the best dates with their asset counts"""
        pass

    @abstractmethod
    def all_media_types(self) -> List[AttributeCount]:
        pass

    @abstractmethod
    def put_asset(self, asset: Asset) -> None:
        """Insert or update by key.

        An existing record keeps its checksum, import date and original
        date; only filename, media type, caption, tags, location and user
        date are overwritten.
        """
        pass

    @abstractmethod
    def delete_asset(self, key: str) -> None:
        """Administrative removal of a record"""
        pass

    @abstractmethod
    def query_by_tags(self, tags: Iterable[str]) -> List[SearchResult]:
        """Assets carrying every one of *tags*"""
        pass

    @abstractmethod
    def query_by_locations(self, locations: Iterable[str]) -> List[SearchResult]:
        """Assets whose label/city/region fields match every one of *locations*"""
        pass

    @abstractmethod
    def query_by_media_type(self, media_type: str) -> List[SearchResult]:
        pass

    @abstractmethod
    def query_by_filename(self, filename: str) -> List[SearchResult]:
        """Exact filename match, ignoring case"""
        pass

    @abstractmethod
    def query_before_date(self, before: datetime) -> List[SearchResult]:
        """Best date strictly before *before*"""
        pass

    @abstractmethod
    def query_after_date(self, after: datetime) -> List[SearchResult]:
        """Best date at or after *after*"""
        pass

    @abstractmethod
    def query_date_range(self, after: datetime, before: datetime) -> List[SearchResult]:
        """Best date within ``[after, before)``"""
        pass

    @abstractmethod
    def query_newborn(self, after: datetime) -> List[SearchResult]:
        """Imported at or after *after* with no tags, caption or location label"""
        pass

    @abstractmethod
    def fetch_assets(self, cursor: Any, limit: int) -> Tuple[List[Asset], Any]:
        """Key-ordered page of full records for bulk export.

        Start with ``cursor=None`` and pass back the returned cursor; the
        cursor becomes :data:`DONE_CURSOR` once nothing is left.
        """
        pass

    @abstractmethod
    def store_assets(self, assets: Iterable[Asset]) -> None:
        """Restore records one at a time, no surrounding transaction"""
        pass


class IBlobRepository(ABC):
    """Narrow contract with the component holding raw files and thumbnails."""

    @abstractmethod
    def store_blob(self, filepath: Path, asset: Asset, keep_source: bool = False) -> None:
        """Move *filepath* into the store; existing blobs are not overwritten."""
        pass

    @abstractmethod
    def delete_blob(self, key: str) -> None:
        pass

    @abstractmethod
    def asset_url(self, key: str) -> str:
        pass

    @abstractmethod
    def thumbnail_url(self, key: str, width: int, height: int) -> str:
        pass
