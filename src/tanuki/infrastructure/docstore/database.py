"""Embedded document database with revisions and materialized views.

Documents are JSON objects identified by ``_id`` and versioned by ``_rev``
(``"<generation>-<digest>"``). Writing a document requires presenting its
current revision, otherwise :class:`DocumentConflictError` is raised. Views
are declared in a design document and maintained on every write; the rows
of all views live in a single table indexed by ``(view, key, doc_id)``.
"""

import json
import logging
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional

from tanuki.errors import DocumentConflictError, DocumentNotFoundError
from tanuki.infrastructure.db.pool import ConnectionPool
from tanuki.utils.hashutils import revision_digest

from .views import Document, MapFunction

_logger = logging.getLogger(__name__)

DESIGN_PREFIX = "_design/"

_MISSING = object()


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _generation(rev: str) -> int:
    return int(rev.split("-", 1)[0])


class DocumentDatabase:
    def __init__(self, pool: ConnectionPool, mappers: Mapping[str, MapFunction]):
        self._pool = pool
        self._mappers = dict(mappers)
        self._views: Dict[str, Dict[str, Any]] = {}

    def initialize(self) -> None:
        with self._pool.connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    doc_id TEXT PRIMARY KEY,
                    rev TEXT NOT NULL,
                    body TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS changes (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    doc_id TEXT NOT NULL,
                    rev TEXT NOT NULL,
                    deleted INTEGER NOT NULL DEFAULT 0
                )
            """)
            # key is untyped so that numbers and strings keep their own ordering
            conn.execute("""
                CREATE TABLE IF NOT EXISTS view_rows (
                    view TEXT NOT NULL,
                    key,
                    doc_id TEXT NOT NULL,
                    value TEXT
                )
            """)
            conn.execute("CREATE INDEX IF NOT EXISTS view_rows_key ON view_rows(view, key, doc_id)")
            conn.execute("CREATE INDEX IF NOT EXISTS view_rows_doc ON view_rows(doc_id)")
        _logger.info("[DOCSTORE] initialized database at %s", self._pool.db_path)

    def close(self) -> None:
        self._pool.close_all()

    # -- design documents -------------------------------------------------

    def ensure_design(self, design: Document) -> bool:
        """Install *design* unless an equal or newer version is stored.

        Returns True when the design was (re)installed and every view rebuilt.
        """

        self._check_views(design["views"])

        try:
            stored = self.get(design["_id"])
        except DocumentNotFoundError:
            stored = None

        if stored is not None and stored.get("version", 0) >= design["version"]:
            self._check_views(stored["views"])
            self._views = stored["views"]
            return False

        replacement = {key: value for key, value in design.items() if key != "_rev"}
        if stored is not None:
            replacement["_rev"] = stored["_rev"]
            _logger.info(
                "[DOCSTORE] upgrading %s from version %s to %s",
                design["_id"], stored.get("version"), design["version"],
            )
        self.insert(replacement)
        self._views = design["views"]
        self.reindex()
        return True

    def _check_views(self, views: Dict[str, Dict[str, Any]]) -> None:
        for name, descriptor in views.items():
            if descriptor.get("map") not in self._mappers:
                raise ValueError(f"View {name!r} names unknown map function {descriptor.get('map')!r}")
            if descriptor.get("reduce") not in (None, "_count"):
                raise ValueError(f"View {name!r} has unsupported reduce {descriptor['reduce']!r}")

    def reindex(self) -> None:
        """Rebuild the rows of every view from the stored documents."""
        with self._pool.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            conn.execute("DELETE FROM view_rows")
            rows = conn.execute(
                "SELECT doc_id, body FROM documents WHERE doc_id NOT LIKE '\\_design/%' ESCAPE '\\'"
            ).fetchall()
            for row in rows:
                self._index_document(conn, row["doc_id"], json.loads(row["body"]))
        _logger.info("[DOCSTORE] reindexed %d documents", len(rows))

    # -- documents ----------------------------------------------------------

    def get(self, doc_id: str) -> Document:
        with self._pool.connection() as conn:
            row = conn.execute(
                "SELECT rev, body FROM documents WHERE doc_id = ?", (doc_id,)
            ).fetchone()
        if row is None:
            raise DocumentNotFoundError(doc_id)
        doc = json.loads(row["body"])
        doc["_id"] = doc_id
        doc["_rev"] = row["rev"]
        return doc

    def insert(self, doc: Document) -> Dict[str, str]:
        """Create or update a document and return its ``id`` and new ``rev``."""

        doc_id = doc.get("_id") or uuid.uuid4().hex
        body = {key: value for key, value in doc.items() if key not in ("_id", "_rev")}
        payload = _dumps(body)
        with self._pool.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT rev FROM documents WHERE doc_id = ?", (doc_id,)).fetchone()
            current = row["rev"] if row else None
            if doc.get("_rev") != current:
                raise DocumentConflictError(
                    f"Document update conflict for {doc_id!r}: have {current!r}, got {doc.get('_rev')!r}"
                )
            generation = _generation(current) + 1 if current else 1
            rev = f"{generation}-{revision_digest(payload.encode('utf-8'))}"
            conn.execute(
                "INSERT INTO documents (doc_id, rev, body) VALUES (?, ?, ?) "
                "ON CONFLICT(doc_id) DO UPDATE SET rev = excluded.rev, body = excluded.body",
                (doc_id, rev, payload),
            )
            conn.execute("INSERT INTO changes (doc_id, rev) VALUES (?, ?)", (doc_id, rev))
            if not doc_id.startswith(DESIGN_PREFIX):
                self._index_document(conn, doc_id, body)
        return {"id": doc_id, "rev": rev}

    def destroy(self, doc_id: str, rev: str) -> None:
        """Delete a document at revision *rev* along with its view rows."""
        with self._pool.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT rev FROM documents WHERE doc_id = ?", (doc_id,)).fetchone()
            if row is None:
                raise DocumentNotFoundError(doc_id)
            if row["rev"] != rev:
                raise DocumentConflictError(f"Document update conflict for {doc_id!r}")
            conn.execute("DELETE FROM documents WHERE doc_id = ?", (doc_id,))
            conn.execute("DELETE FROM view_rows WHERE doc_id = ?", (doc_id,))
            conn.execute(
                "INSERT INTO changes (doc_id, rev, deleted) VALUES (?, ?, 1)",
                (doc_id, f"{_generation(rev) + 1}-deleted"),
            )

    def count_documents(self) -> int:
        """Number of documents, design documents excluded."""
        with self._pool.connection() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS count FROM documents "
                "WHERE doc_id NOT LIKE '\\_design/%' ESCAPE '\\'"
            ).fetchone()
        return row["count"]

    def list(
        self,
        startkey: Optional[str] = None,
        limit: Optional[int] = None,
        include_docs: bool = False,
    ) -> List[Dict[str, Any]]:
        """Walk documents in id order starting at *startkey* (inclusive).

        Design documents are not listed.
        """

        sql = (
            "SELECT doc_id, rev, body FROM documents "
            "WHERE doc_id NOT LIKE '\\_design/%' ESCAPE '\\'"
        )
        params: List[Any] = []
        if startkey is not None:
            sql += " AND doc_id >= ?"
            params.append(startkey)
        sql += " ORDER BY doc_id"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)
        with self._pool.connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        result = []
        for row in rows:
            entry: Dict[str, Any] = {"id": row["doc_id"], "key": row["doc_id"], "value": {"rev": row["rev"]}}
            if include_docs:
                doc = json.loads(row["body"])
                doc["_id"] = row["doc_id"]
                doc["_rev"] = row["rev"]
                entry["doc"] = doc
            result.append(entry)
        return result

    # -- views --------------------------------------------------------------

    def _index_document(self, conn, doc_id: str, body: Document) -> None:
        conn.execute("DELETE FROM view_rows WHERE doc_id = ?", (doc_id,))
        rows = []
        for name, descriptor in self._views.items():
            mapper = self._mappers[descriptor["map"]]
            for key, value in mapper(body):
                rows.append((name, key, doc_id, _dumps(value)))
        if rows:
            conn.executemany(
                "INSERT INTO view_rows (view, key, doc_id, value) VALUES (?, ?, ?, ?)", rows
            )

    def view(
        self,
        name: str,
        *,
        key: Any = _MISSING,
        keys: Optional[Iterable[Any]] = None,
        startkey: Any = None,
        endkey: Any = None,
        limit: Optional[int] = None,
        include_docs: bool = False,
        group: bool = False,
    ) -> List[Dict[str, Any]]:
        """Query the rows of view *name*, ordered by key then document id.

        ``startkey`` and ``endkey`` are inclusive. With ``group=True`` the
        view must declare the ``_count`` reducer and one row per distinct
        key is returned with the number of emitted rows as its value.
        """

        descriptor = self._views.get(name)
        if descriptor is None:
            raise ValueError(f"Unknown view {name!r}")

        where = ["view_rows.view = ?"]
        params: List[Any] = [name]
        if key is not _MISSING:
            where.append("view_rows.key = ?")
            params.append(key)
        if keys is not None:
            keys = list(keys)
            if not keys:
                return []
            where.append(f"view_rows.key IN ({', '.join('?' for _ in keys)})")
            params.extend(keys)
        if startkey is not None:
            where.append("view_rows.key >= ?")
            params.append(startkey)
        if endkey is not None:
            where.append("view_rows.key <= ?")
            params.append(endkey)
        clause = " AND ".join(where)

        if group:
            if descriptor.get("reduce") != "_count":
                raise ValueError(f"View {name!r} has no reduce function")
            sql = (
                f"SELECT view_rows.key AS key, COUNT(*) AS value FROM view_rows "
                f"WHERE {clause} GROUP BY view_rows.key ORDER BY view_rows.key"
            )
        elif include_docs:
            sql = (
                "SELECT view_rows.key AS key, view_rows.doc_id AS doc_id, view_rows.value AS value, "
                "documents.rev AS rev, documents.body AS body FROM view_rows "
                "JOIN documents ON documents.doc_id = view_rows.doc_id "
                f"WHERE {clause} ORDER BY view_rows.key, view_rows.doc_id"
            )
        else:
            sql = (
                "SELECT view_rows.key AS key, view_rows.doc_id AS doc_id, view_rows.value AS value "
                f"FROM view_rows WHERE {clause} ORDER BY view_rows.key, view_rows.doc_id"
            )
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        with self._pool.connection() as conn:
            rows = conn.execute(sql, params).fetchall()

        if group:
            return [{"key": row["key"], "value": row["value"]} for row in rows]
        result = []
        for row in rows:
            entry = {
                "id": row["doc_id"],
                "key": row["key"],
                "value": json.loads(row["value"]) if row["value"] is not None else None,
            }
            if include_docs:
                doc = json.loads(row["body"])
                doc["_id"] = row["doc_id"]
                doc["_rev"] = row["rev"]
                entry["doc"] = doc
            result.append(entry)
        return result

    # -- changes feed ---------------------------------------------------------

    def changes(self, since: Any = "now", limit: int = 1) -> Dict[str, Any]:
        """Return changes after sequence *since*; ``"now"`` yields none."""
        with self._pool.connection() as conn:
            last = conn.execute("SELECT COALESCE(MAX(seq), 0) AS seq FROM changes").fetchone()["seq"]
            if since == "now":
                return {"results": [], "last_seq": last}
            rows = conn.execute(
                "SELECT seq, doc_id, rev, deleted FROM changes WHERE seq > ? ORDER BY seq LIMIT ?",
                (int(since), limit),
            ).fetchall()
        results = [
            {"seq": row["seq"], "id": row["doc_id"], "rev": row["rev"], "deleted": bool(row["deleted"])}
            for row in rows
        ]
        return {"results": results, "last_seq": results[-1]["seq"] if results else last}
