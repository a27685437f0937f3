"""Map functions and the design document for asset documents.

View descriptors in the design document are plain data: they name a map
function from :data:`MAPPERS` and optionally the ``_count`` reducer. Bump
``ASSETS_DESIGN["version"]`` whenever a map function changes so that
existing databases rebuild their view rows on the next start.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from tanuki.utils.timeutils import from_millis

Document = Dict[str, Any]
Emitted = Iterator[Tuple[Any, Any]]
MapFunction = Callable[[Document], Emitted]

DESIGN_ID = "_design/assets"

# Field precedence for the date an asset is filed under.
BEST_DATE_FIELDS = ("user_date", "original_date", "import_date")


def best_date(doc: Document) -> Optional[int]:
    for name in BEST_DATE_FIELDS:
        if doc.get(name) is not None:
            return doc[name]
    return None


def _search_value(doc: Document) -> List[Any]:
    return [best_date(doc), doc.get("filename"), doc.get("location"), doc.get("media_type")]


def _location_parts(doc: Document) -> List[str]:
    location = doc.get("location") or {}
    return [location[name] for name in ("label", "city", "region") if location.get(name)]


def by_checksum(doc: Document) -> Emitted:
    if doc.get("checksum"):
        yield doc["checksum"].lower(), None


def by_date(doc: Document) -> Emitted:
    yield best_date(doc), _search_value(doc)


def by_filename(doc: Document) -> Emitted:
    yield (doc.get("filename") or "").lower(), _search_value(doc)


def by_location(doc: Document) -> Emitted:
    for part in _location_parts(doc):
        yield part.lower(), _search_value(doc)


def by_mimetype(doc: Document) -> Emitted:
    yield (doc.get("media_type") or "").lower(), _search_value(doc)


def by_tag(doc: Document) -> Emitted:
    for tag in doc.get("tags") or []:
        yield tag.lower(), _search_value(doc)


def newborn(doc: Document) -> Emitted:
    # City and region may be filled in at import time, only the label counts.
    location = doc.get("location") or {}
    if not doc.get("tags") and not doc.get("caption") and not location.get("label"):
        yield doc.get("import_date"), _search_value(doc)


def all_location_records(doc: Document) -> Emitted:
    location = doc.get("location")
    if location:
        parts = (location.get(name) or "" for name in ("label", "city", "region"))
        yield "\t".join(parts), 1


def all_location_parts(doc: Document) -> Emitted:
    for part in _location_parts(doc):
        yield part.lower(), 1


def all_tags(doc: Document) -> Emitted:
    for tag in doc.get("tags") or []:
        yield tag.lower(), 1


def all_years(doc: Document) -> Emitted:
    value = best_date(doc)
    if value is not None:
        yield f"{from_millis(value).year:04d}", 1


def all_media_types(doc: Document) -> Emitted:
    yield (doc.get("media_type") or "").lower(), 1


MAPPERS: Dict[str, MapFunction] = {
    "by_checksum": by_checksum,
    "by_date": by_date,
    "by_filename": by_filename,
    "by_location": by_location,
    "by_mimetype": by_mimetype,
    "by_tag": by_tag,
    "newborn": newborn,
    "all_location_records": all_location_records,
    "all_location_parts": all_location_parts,
    "all_tags": all_tags,
    "all_years": all_years,
    "all_media_types": all_media_types,
}

_COUNTED = {"all_location_records", "all_location_parts", "all_tags", "all_years", "all_media_types"}

ASSETS_DESIGN: Document = {
    "_id": DESIGN_ID,
    "version": 1,
    "views": {
        name: ({"map": name, "reduce": "_count"} if name in _COUNTED else {"map": name})
        for name in MAPPERS
    },
}
