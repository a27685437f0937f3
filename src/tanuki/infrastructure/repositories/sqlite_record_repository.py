import logging
import sqlite3
from collections import Counter
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from tanuki.domain.models import Asset, AttributeCount, Location, SearchResult
from tanuki.domain.repositories import DONE_CURSOR, IRecordRepository
from tanuki.domain.services.matching import normalize_values, select_complete_matches
from tanuki.errors import RepositoryInitError
from tanuki.infrastructure.db.pool import ConnectionPool
from tanuki.utils.timeutils import from_millis, optional_datetime, optional_millis, to_millis

_logger = logging.getLogger(__name__)

# The "dates" index is declared on exactly this expression. SQLite only uses
# an expression index when a query repeats the expression verbatim, so every
# date predicate below is built from this constant.
BEST_DATE_SQL = "coalesce(user_date, orig_date, imported)"

_RESULT_COLUMNS = f"key, filename, mimetype, loc_label, loc_city, loc_region, {BEST_DATE_SQL} AS date"

_HASHES_INDEX_SQL = "CREATE INDEX IF NOT EXISTS hashes ON assets (hash)"

_SCHEMA = [
    f"""
    CREATE TABLE IF NOT EXISTS assets (
        key TEXT NOT NULL PRIMARY KEY,
        hash TEXT NOT NULL COLLATE NOCASE,
        filename TEXT NOT NULL,
        filesize INTEGER NOT NULL,
        mimetype TEXT NOT NULL COLLATE NOCASE,
        caption TEXT,
        tags TEXT,
        loc_label TEXT,
        loc_city TEXT,
        loc_region TEXT,
        imported INTEGER NOT NULL,
        user_date INTEGER,
        orig_date INTEGER,
        year TEXT AS (strftime('%Y', {BEST_DATE_SQL} / 1000.0, 'unixepoch')) STORED
    )
    """,
    _HASHES_INDEX_SQL,
    f"CREATE INDEX IF NOT EXISTS dates ON assets ({BEST_DATE_SQL})",
    # tags hold tab separated values; explode them one row per tag
    """
    CREATE VIEW IF NOT EXISTS tags_view AS
        WITH RECURSIVE split(tag, rest) AS (
            SELECT '', LOWER(tags) || CHAR(9) FROM assets WHERE tags IS NOT NULL
            UNION ALL
            SELECT substr(rest, 1, instr(rest, CHAR(9)) - 1),
                   substr(rest, instr(rest, CHAR(9)) + 1)
            FROM split WHERE instr(rest, CHAR(9)) > 0
        )
        SELECT tag FROM split WHERE tag != ''
    """,
    """
    CREATE VIEW IF NOT EXISTS locations_view AS
        SELECT LOWER(loc_label) AS value FROM assets WHERE loc_label IS NOT NULL AND loc_label != ''
        UNION ALL
        SELECT LOWER(loc_city) FROM assets WHERE loc_city IS NOT NULL AND loc_city != ''
        UNION ALL
        SELECT LOWER(loc_region) FROM assets WHERE loc_region IS NOT NULL AND loc_region != ''
    """,
]

_UPSERT_SQL = """
    INSERT INTO assets (key, hash, filename, filesize, mimetype, caption, tags,
        loc_label, loc_city, loc_region, imported, user_date, orig_date)
    VALUES (:key, :hash, :filename, :filesize, :mimetype, :caption, :tags,
        :loc_label, :loc_city, :loc_region, :imported, :user_date, :orig_date)
    ON CONFLICT(key) DO UPDATE SET
        filename = excluded.filename,
        mimetype = excluded.mimetype,
        caption = excluded.caption,
        tags = excluded.tags,
        loc_label = excluded.loc_label,
        loc_city = excluded.loc_city,
        loc_region = excluded.loc_region,
        user_date = excluded.user_date
"""

_RESTORE_SQL = """
    INSERT INTO assets (key, hash, filename, filesize, mimetype, caption, tags,
        loc_label, loc_city, loc_region, imported, user_date, orig_date)
    VALUES (:key, :hash, :filename, :filesize, :mimetype, :caption, :tags,
        :loc_label, :loc_city, :loc_region, :imported, :user_date, :orig_date)
    ON CONFLICT(key) DO UPDATE SET
        hash = excluded.hash,
        filename = excluded.filename,
        filesize = excluded.filesize,
        mimetype = excluded.mimetype,
        caption = excluded.caption,
        tags = excluded.tags,
        loc_label = excluded.loc_label,
        loc_city = excluded.loc_city,
        loc_region = excluded.loc_region,
        imported = excluded.imported,
        user_date = excluded.user_date,
        orig_date = excluded.orig_date
"""


class SQLiteRecordRepository(IRecordRepository):
    """Asset records in a single SQLite table with an expression index on dates."""

    def __init__(self, pool: ConnectionPool):
        self._pool = pool
        _logger.info("[REPO-INIT] SQLiteRecordRepository created, db_path=%s", pool.db_path)

    def initialize(self) -> None:
        try:
            with self._pool.connection() as conn:
                for statement in _SCHEMA:
                    conn.execute(statement)
                self._relax_hashes_index(conn)
        except sqlite3.Error as exc:
            raise RepositoryInitError(f"Cannot prepare {self._pool.db_path}: {exc}") from exc
        _logger.info("[REPO-INIT] schema ready in %s", self._pool.db_path)

    @staticmethod
    def _relax_hashes_index(conn: sqlite3.Connection) -> None:
        """Rebuild the checksum index without its uniqueness constraint."""
        for row in conn.execute("PRAGMA index_list(assets)").fetchall():
            if row["name"] == "hashes" and row["unique"]:
                conn.execute("DROP INDEX hashes")
                conn.execute(_HASHES_INDEX_SQL)
                _logger.info("[REPO-INIT] checksum index no longer unique")

    def close(self) -> None:
        self._pool.close_all()

    # -- lookups --------------------------------------------------------------

    def count_assets(self) -> int:
        with self._pool.connection() as conn:
            return conn.execute("SELECT COUNT(*) FROM assets").fetchone()[0]

    def get_asset_by_id(self, key: str) -> Optional[Asset]:
        with self._pool.connection() as conn:
            row = conn.execute("SELECT * FROM assets WHERE key = ?", (key,)).fetchone()
        return self._map_row_to_asset(row) if row else None

    def get_asset_by_digest(self, checksum: str) -> Optional[Asset]:
        with self._pool.connection() as conn:
            row = conn.execute(
                "SELECT * FROM assets WHERE hash = ? ORDER BY key LIMIT 1", (checksum,)
            ).fetchone()
        return self._map_row_to_asset(row) if row else None

    def all_tags(self) -> List[AttributeCount]:
        return self._folded_counts("SELECT tag FROM tags_view")

    def all_locations(self) -> List[AttributeCount]:
        return self._folded_counts("SELECT value FROM locations_view")

    def raw_locations(self) -> List[Location]:
        with self._pool.connection() as conn:
            rows = conn.execute(
                "SELECT DISTINCT loc_label, loc_city, loc_region FROM assets "
                "WHERE loc_label IS NOT NULL OR loc_city IS NOT NULL OR loc_region IS NOT NULL"
            ).fetchall()
        locations = [Location(row["loc_label"], row["loc_city"], row["loc_region"]) for row in rows]
        return sorted(locations, key=lambda loc: (loc.label or "", loc.city or "", loc.region or ""))

    def all_years(self) -> List[AttributeCount]:
        return self._counts("SELECT year AS label, COUNT(*) AS count FROM assets GROUP BY year ORDER BY year")

    def all_media_types(self) -> List[AttributeCount]:
        return self._folded_counts("SELECT mimetype FROM assets")

    def _counts(self, sql: str) -> List[AttributeCount]:
        with self._pool.connection() as conn:
            rows = conn.execute(sql).fetchall()
        return [AttributeCount(row["label"], row["count"]) for row in rows]

    def _folded_counts(self, sql: str) -> List[AttributeCount]:
        # SQLite LOWER() folds ASCII only; group on the Python lower case instead
        with self._pool.connection() as conn:
            counts = Counter(row[0].lower() for row in conn.execute(sql))
        return [AttributeCount(label, counts[label]) for label in sorted(counts)]

    # -- writes ---------------------------------------------------------------

    def put_asset(self, asset: Asset) -> None:
        with self._pool.connection() as conn:
            conn.execute(_UPSERT_SQL, self._params(asset))

    def delete_asset(self, key: str) -> None:
        with self._pool.connection() as conn:
            conn.execute("DELETE FROM assets WHERE key = ?", (key,))

    def store_assets(self, assets: Iterable[Asset]) -> None:
        count = 0
        for asset in assets:
            with self._pool.connection() as conn:
                conn.execute(_RESTORE_SQL, self._params(asset))
            count += 1
        _logger.info("[REPO-STORE] restored %d records", count)

    @staticmethod
    def _params(asset: Asset) -> dict:
        location = asset.location or Location()
        return {
            "key": asset.key,
            "hash": asset.checksum,
            "filename": asset.filename,
            "filesize": asset.byte_length,
            "mimetype": asset.media_type,
            "caption": asset.caption or None,
            "tags": "\t".join(asset.tags) or None,
            "loc_label": location.label,
            "loc_city": location.city,
            "loc_region": location.region,
            "imported": to_millis(asset.import_date),
            "user_date": optional_millis(asset.user_date),
            "orig_date": optional_millis(asset.original_date),
        }

    # -- searches -------------------------------------------------------------

    def query_by_tags(self, tags: Iterable[str]) -> List[SearchResult]:
        wanted = normalize_values(tags)
        if not wanted:
            return []
        # SQLite LOWER() folds ASCII only, so tags are compared in Python
        with self._pool.connection() as conn:
            rows = conn.execute(
                f"SELECT {_RESULT_COLUMNS}, tags FROM assets WHERE tags IS NOT NULL"
            ).fetchall()
        matches = []
        for row in rows:
            result = self._map_row_to_result(row)
            for tag in row["tags"].split("\t"):
                matches.append((row["key"], tag.lower(), result))
        return select_complete_matches(matches, wanted)

    def query_by_locations(self, locations: Iterable[str]) -> List[SearchResult]:
        wanted = normalize_values(locations)
        if not wanted:
            return []
        with self._pool.connection() as conn:
            rows = conn.execute(
                f"SELECT {_RESULT_COLUMNS} FROM assets "
                "WHERE loc_label IS NOT NULL OR loc_city IS NOT NULL OR loc_region IS NOT NULL"
            ).fetchall()
        matches = []
        for row in rows:
            result = self._map_row_to_result(row)
            for part in (row["loc_label"], row["loc_city"], row["loc_region"]):
                if part:
                    matches.append((row["key"], part.lower(), result))
        return select_complete_matches(matches, wanted)

    def query_by_media_type(self, media_type: str) -> List[SearchResult]:
        return self._results(f"SELECT {_RESULT_COLUMNS} FROM assets WHERE mimetype = ?", (media_type,))

    def query_by_filename(self, filename: str) -> List[SearchResult]:
        wanted = filename.strip().lower()
        with self._pool.connection() as conn:
            rows = conn.execute(f"SELECT {_RESULT_COLUMNS} FROM assets").fetchall()
        return [self._map_row_to_result(row) for row in rows if row["filename"].lower() == wanted]

    def query_before_date(self, before: datetime) -> List[SearchResult]:
        return self._results(
            f"SELECT {_RESULT_COLUMNS} FROM assets WHERE {BEST_DATE_SQL} < ?",
            (to_millis(before),),
        )

    def query_after_date(self, after: datetime) -> List[SearchResult]:
        return self._results(
            f"SELECT {_RESULT_COLUMNS} FROM assets WHERE {BEST_DATE_SQL} >= ?",
            (to_millis(after),),
        )

    def query_date_range(self, after: datetime, before: datetime) -> List[SearchResult]:
        return self._results(
            f"SELECT {_RESULT_COLUMNS} FROM assets WHERE {BEST_DATE_SQL} >= ? AND {BEST_DATE_SQL} < ?",
            (to_millis(after), to_millis(before)),
        )

    def query_newborn(self, after: datetime) -> List[SearchResult]:
        return self._results(
            f"SELECT {_RESULT_COLUMNS} FROM assets WHERE imported >= ? "
            "AND tags IS NULL AND caption IS NULL AND loc_label IS NULL",
            (to_millis(after),),
        )

    def _results(self, sql: str, params: Tuple[Any, ...]) -> List[SearchResult]:
        with self._pool.connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        _logger.debug("[REPO-QUERY] %d rows for %s", len(rows), params)
        return [self._map_row_to_result(row) for row in rows]

    # -- bulk export ------------------------------------------------------------

    def fetch_assets(self, cursor: Any, limit: int) -> Tuple[List[Asset], Any]:
        if cursor == DONE_CURSOR:
            return [], DONE_CURSOR
        with self._pool.connection() as conn:
            if cursor is None:
                rows = conn.execute("SELECT * FROM assets ORDER BY key LIMIT ?", (limit,)).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM assets WHERE key > ? ORDER BY key LIMIT ?", (cursor, limit)
                ).fetchall()
        assets = [self._map_row_to_asset(row) for row in rows]
        return assets, (assets[-1].key if assets else DONE_CURSOR)

    # -- row mapping ------------------------------------------------------------

    def _map_row_to_asset(self, row: sqlite3.Row) -> Asset:
        return Asset(
            key=row["key"],
            checksum=row["hash"],
            filename=row["filename"],
            byte_length=row["filesize"],
            media_type=row["mimetype"],
            tags=row["tags"].split("\t") if row["tags"] else [],
            import_date=from_millis(row["imported"]),
            caption=row["caption"],
            location=Location.from_parts(row["loc_label"], row["loc_city"], row["loc_region"]),
            user_date=optional_datetime(row["user_date"]),
            original_date=optional_datetime(row["orig_date"]),
        )

    def _map_row_to_result(self, row: sqlite3.Row) -> SearchResult:
        return SearchResult(
            asset_id=row["key"],
            filename=row["filename"],
            media_type=row["mimetype"],
            location=Location.from_parts(row["loc_label"], row["loc_city"], row["loc_region"]),
            datetime=from_millis(row["date"]),
        )
