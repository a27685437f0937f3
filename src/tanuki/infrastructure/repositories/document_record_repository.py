import logging
import sqlite3
import threading
import time
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from tanuki.domain.models import Asset, AttributeCount, Location, SearchResult
from tanuki.domain.repositories import DONE_CURSOR, IRecordRepository
from tanuki.domain.services.matching import normalize_values, select_complete_matches
from tanuki.errors import (
    DocumentConflictError,
    DocumentNotFoundError,
    RecordConflictError,
    RepositoryInitError,
    TanukiError,
)
from tanuki.infrastructure.docstore import ASSETS_DESIGN, DocumentDatabase
from tanuki.utils.timeutils import from_millis, optional_datetime, optional_millis, to_millis

_logger = logging.getLogger(__name__)

# Fields an update may overwrite; the rest are fixed once the record exists.
MUTABLE_FIELDS = ("filename", "media_type", "caption", "tags", "location", "user_date")


def _location_to_doc(location: Optional[Location]) -> Optional[Dict[str, Optional[str]]]:
    if location is None or not location.has_values():
        return None
    return {"label": location.label, "city": location.city, "region": location.region}


def _location_from_doc(value: Optional[Dict[str, Any]]) -> Optional[Location]:
    if not value:
        return None
    return Location.from_parts(value.get("label"), value.get("city"), value.get("region"))


def asset_to_document(asset: Asset) -> Dict[str, Any]:
    return {
        "_id": asset.key,
        "checksum": asset.checksum,
        "filename": asset.filename,
        "byte_length": asset.byte_length,
        "media_type": asset.media_type,
        "tags": list(asset.tags),
        "import_date": to_millis(asset.import_date),
        "caption": asset.caption or None,
        "location": _location_to_doc(asset.location),
        "user_date": optional_millis(asset.user_date),
        "original_date": optional_millis(asset.original_date),
    }


def asset_from_document(doc: Dict[str, Any]) -> Asset:
    return Asset(
        key=doc["_id"],
        checksum=doc.get("checksum") or "",
        filename=doc.get("filename") or "",
        byte_length=doc.get("byte_length") or 0,
        media_type=doc.get("media_type") or "",
        tags=list(doc.get("tags") or []),
        import_date=from_millis(doc["import_date"]),
        caption=doc.get("caption"),
        location=_location_from_doc(doc.get("location")),
        user_date=optional_datetime(doc.get("user_date")),
        original_date=optional_datetime(doc.get("original_date")),
    )


class DocumentRecordRepository(IRecordRepository):
    """Asset records kept as documents with precomputed secondary views.

    Writes are read-modify-write against the current revision. A concurrent
    writer causes a conflict, which is retried with exponential backoff.
    While open, a heartbeat thread polls the changes feed so the store is
    exercised at a steady interval.
    """

    def __init__(
        self,
        database: DocumentDatabase,
        heartbeat_ms: int = 60000,
        conflict_retries: int = 5,
        conflict_backoff: float = 0.05,
    ):
        self._db = database
        self._heartbeat_ms = heartbeat_ms
        self._conflict_retries = conflict_retries
        self._conflict_backoff = conflict_backoff
        self._stop = threading.Event()
        self._heartbeat: Optional[threading.Thread] = None
        _logger.info(
            "[REPO-INIT] DocumentRecordRepository created, heartbeat_ms=%s, retries=%s",
            heartbeat_ms, conflict_retries,
        )

    def initialize(self) -> None:
        try:
            self._db.initialize()
            rebuilt = self._db.ensure_design(ASSETS_DESIGN)
        except (sqlite3.Error, ValueError) as exc:
            raise RepositoryInitError(f"Cannot prepare document store: {exc}") from exc
        if rebuilt:
            _logger.info("[REPO-INIT] installed design version %s", ASSETS_DESIGN["version"])
        self._start_heartbeat()

    def close(self) -> None:
        self._stop.set()
        if self._heartbeat is not None:
            self._heartbeat.join(timeout=5)
            self._heartbeat = None
        self._db.close()

    # -- heartbeat --------------------------------------------------------------

    def _start_heartbeat(self) -> None:
        if self._heartbeat_ms <= 0 or self._heartbeat is not None:
            return
        self._stop.clear()
        self._heartbeat = threading.Thread(
            target=self._stay_alive, name="tanuki-docstore-heartbeat", daemon=True
        )
        self._heartbeat.start()

    def _stay_alive(self) -> None:
        interval = self._heartbeat_ms / 1000.0
        while not self._stop.wait(interval):
            try:
                self._db.changes(since="now", limit=1)
            except (sqlite3.Error, TanukiError):
                _logger.exception("[HEARTBEAT] changes feed poll failed")

    # -- lookups ------------------------------------------------------------------

    def count_assets(self) -> int:
        return self._db.count_documents()

    def get_asset_by_id(self, key: str) -> Optional[Asset]:
        try:
            return asset_from_document(self._db.get(key))
        except DocumentNotFoundError:
            return None

    def get_asset_by_digest(self, checksum: str) -> Optional[Asset]:
        rows = self._db.view("by_checksum", key=checksum.lower(), limit=1, include_docs=True)
        if rows:
            return asset_from_document(rows[0]["doc"])
        return None

    def all_tags(self) -> List[AttributeCount]:
        return self._grouped("all_tags")

    def all_locations(self) -> List[AttributeCount]:
        return self._grouped("all_location_parts")

    def raw_locations(self) -> List[Location]:
        locations = []
        for row in self._db.view("all_location_records", group=True):
            parts = (row["key"].split("\t") + ["", "", ""])[:3]
            location = Location.from_parts(*parts)
            if location is not None:
                locations.append(location)
        return sorted(locations, key=lambda loc: (loc.label or "", loc.city or "", loc.region or ""))

    def all_years(self) -> List[AttributeCount]:
        return self._grouped("all_years")

    def all_media_types(self) -> List[AttributeCount]:
        return self._grouped("all_media_types")

    def _grouped(self, view: str) -> List[AttributeCount]:
        return [AttributeCount(str(row["key"]), row["value"]) for row in self._db.view(view, group=True)]

    # -- writes -------------------------------------------------------------------

    def put_asset(self, asset: Asset) -> None:
        def merge(existing: Optional[Dict[str, Any]]) -> Dict[str, Any]:
            fresh = asset_to_document(asset)
            if existing is None:
                return fresh
            for name in MUTABLE_FIELDS:
                existing[name] = fresh[name]
            return existing

        self._write(asset.key, merge)

    def store_assets(self, assets: Iterable[Asset]) -> None:
        count = 0
        for asset in assets:
            def replace(existing: Optional[Dict[str, Any]], asset=asset) -> Dict[str, Any]:
                doc = asset_to_document(asset)
                if existing is not None:
                    doc["_rev"] = existing["_rev"]
                return doc

            self._write(asset.key, replace)
            count += 1
        _logger.info("[REPO-STORE] restored %d records", count)

    def _write(self, key: str, build: Callable[[Optional[Dict[str, Any]]], Dict[str, Any]]) -> None:
        """Apply *build* to the current document and save it, retrying conflicts."""

        for attempt in range(self._conflict_retries + 1):
            try:
                existing = self._db.get(key)
            except DocumentNotFoundError:
                existing = None
            try:
                self._db.insert(build(existing))
                return
            except DocumentConflictError:
                if attempt == self._conflict_retries:
                    break
                delay = self._conflict_backoff * (2 ** attempt)
                _logger.warning(
                    "[REPO-PUT] conflict writing %s (attempt %d), retrying in %.3fs",
                    key, attempt + 1, delay,
                )
                time.sleep(delay)
        raise RecordConflictError(
            f"Gave up writing {key} after {self._conflict_retries + 1} conflicting attempts"
        )

    def delete_asset(self, key: str) -> None:
        try:
            doc = self._db.get(key)
        except DocumentNotFoundError:
            return
        self._db.destroy(key, doc["_rev"])

    # -- searches -----------------------------------------------------------------

    def query_by_tags(self, tags: Iterable[str]) -> List[SearchResult]:
        return self._query_all_keys("by_tag", tags)

    def query_by_locations(self, locations: Iterable[str]) -> List[SearchResult]:
        return self._query_all_keys("by_location", locations)

    def _query_all_keys(self, view: str, values: Iterable[str]) -> List[SearchResult]:
        wanted = normalize_values(values)
        if not wanted:
            return []
        rows = self._db.view(view, keys=wanted)
        matches = [(row["id"], row["key"], self._row_to_result(row)) for row in rows]
        return select_complete_matches(matches, wanted)

    def query_by_media_type(self, media_type: str) -> List[SearchResult]:
        return self._view_results("by_mimetype", key=media_type.lower())

    def query_by_filename(self, filename: str) -> List[SearchResult]:
        return self._view_results("by_filename", key=filename.strip().lower())

    def query_before_date(self, before: datetime) -> List[SearchResult]:
        return self._view_results("by_date", endkey=to_millis(before) - 1)

    def query_after_date(self, after: datetime) -> List[SearchResult]:
        return self._view_results("by_date", startkey=to_millis(after))

    def query_date_range(self, after: datetime, before: datetime) -> List[SearchResult]:
        return self._view_results("by_date", startkey=to_millis(after), endkey=to_millis(before) - 1)

    def query_newborn(self, after: datetime) -> List[SearchResult]:
        return self._view_results("newborn", startkey=to_millis(after))

    def _view_results(self, view: str, **options: Any) -> List[SearchResult]:
        rows = self._db.view(view, **options)
        _logger.debug("[REPO-QUERY] %s %s -> %d rows", view, options, len(rows))
        return [self._row_to_result(row) for row in rows]

    @staticmethod
    def _row_to_result(row: Dict[str, Any]) -> SearchResult:
        best, filename, location, media_type = row["value"]
        return SearchResult(
            asset_id=row["id"],
            filename=filename,
            media_type=media_type,
            location=_location_from_doc(location),
            datetime=from_millis(best),
        )

    # -- bulk export ----------------------------------------------------------------

    def fetch_assets(self, cursor: Any, limit: int) -> Tuple[List[Asset], Any]:
        if cursor == DONE_CURSOR:
            return [], DONE_CURSOR
        # one extra row tells whether another page exists and where it starts
        rows = self._db.list(startkey=cursor, limit=limit + 1, include_docs=True)
        if len(rows) > limit:
            cursor = rows.pop()["id"]
        else:
            cursor = DONE_CURSOR
        return [asset_from_document(row["doc"]) for row in rows], cursor
