"""Export the whole collection to JSON lines and restore it again."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .base import UseCase, UseCaseRequest, UseCaseResponse
from tanuki.config import DUMP_BATCH_SIZE
from tanuki.domain.models import Asset, Location
from tanuki.domain.repositories import DONE_CURSOR, IRecordRepository
from tanuki.errors import ImportFailedError
from tanuki.events.bus import EventBus
from tanuki.events.domain_events import AssetsRestoredEvent
from tanuki.utils.jsonio import read_json_lines, write_json_lines
from tanuki.utils.timeutils import ensure_utc


def _date_out(value: Optional[datetime]) -> Optional[str]:
    return None if value is None else ensure_utc(value).isoformat()


def _date_in(value: Optional[str]) -> Optional[datetime]:
    return None if value is None else ensure_utc(datetime.fromisoformat(value))


def asset_to_record(asset: Asset) -> Dict[str, Any]:
    location = asset.location
    return {
        "key": asset.key,
        "checksum": asset.checksum,
        "filename": asset.filename,
        "byte_length": asset.byte_length,
        "media_type": asset.media_type,
        "tags": list(asset.tags),
        "import_date": _date_out(asset.import_date),
        "caption": asset.caption,
        "location": None if location is None else {
            "label": location.label,
            "city": location.city,
            "region": location.region,
        },
        "user_date": _date_out(asset.user_date),
        "original_date": _date_out(asset.original_date),
    }


def asset_from_record(record: Dict[str, Any]) -> Asset:
    location = record.get("location") or {}
    return Asset(
        key=record["key"],
        checksum=record["checksum"],
        filename=record["filename"],
        byte_length=record.get("byte_length", 0),
        media_type=record["media_type"],
        tags=list(record.get("tags") or []),
        import_date=_date_in(record["import_date"]),
        caption=record.get("caption"),
        location=Location.from_parts(location.get("label"), location.get("city"), location.get("region")),
        user_date=_date_in(record.get("user_date")),
        original_date=_date_in(record.get("original_date")),
    )


@dataclass(frozen=True)
class DumpAssetsRequest(UseCaseRequest):
    path: Path = Path("dump.json")
    batch_size: int = DUMP_BATCH_SIZE

@dataclass(frozen=True)
class DumpAssetsResponse(UseCaseResponse):
    count: int = 0

class DumpAssetsUseCase(UseCase):
    def __init__(self, record_repo: IRecordRepository):
        self._records = record_repo
        self._logger = logging.getLogger(__name__)

    def _walk(self, batch_size: int) -> Iterator[Asset]:
        cursor = None
        while cursor != DONE_CURSOR:
            assets, cursor = self._records.fetch_assets(cursor, batch_size)
            yield from assets

    def execute(self, request: DumpAssetsRequest) -> DumpAssetsResponse:
        records = (asset_to_record(asset) for asset in self._walk(request.batch_size))
        count = write_json_lines(Path(request.path), records)
        self._logger.info("[DUMP] wrote %d records to %s", count, request.path)
        return DumpAssetsResponse(count=count)


@dataclass(frozen=True)
class LoadAssetsRequest(UseCaseRequest):
    path: Path = Path("dump.json")
    batch_size: int = DUMP_BATCH_SIZE

@dataclass(frozen=True)
class LoadAssetsResponse(UseCaseResponse):
    count: int = 0

class LoadAssetsUseCase(UseCase):
    """Restore records from a dump; loading the same file twice is harmless."""

    def __init__(self, record_repo: IRecordRepository, event_bus: EventBus):
        self._records = record_repo
        self._event_bus = event_bus
        self._logger = logging.getLogger(__name__)

    def execute(self, request: LoadAssetsRequest) -> LoadAssetsResponse:
        count = 0
        batch: List[Asset] = []
        try:
            for record in read_json_lines(Path(request.path)):
                batch.append(asset_from_record(record))
                if len(batch) >= request.batch_size:
                    self._records.store_assets(batch)
                    count += len(batch)
                    batch = []
        except (OSError, ValueError, KeyError) as exc:
            raise ImportFailedError(f"Cannot load {request.path}: {exc}") from exc
        if batch:
            self._records.store_assets(batch)
            count += len(batch)

        self._logger.info("[LOAD] restored %d records from %s", count, request.path)
        self._event_bus.publish(AssetsRestoredEvent(source="load", asset_count=count))
        return LoadAssetsResponse(count=count)
