import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .base import UseCase, UseCaseRequest, UseCaseResponse
from tanuki.domain.models import Asset
from tanuki.domain.repositories import IBlobRepository, IRecordRepository
from tanuki.errors import ImportFailedError
from tanuki.events.bus import EventBus
from tanuki.events.domain_events import AssetImportedEvent
from tanuki.utils.hashutils import checksum_file
from tanuki.utils.pathutils import infer_media_type, new_asset_id

@dataclass(frozen=True)
class ImportAssetRequest(UseCaseRequest):
    filepath: Path = Path()
    filename: Optional[str] = None
    media_type: Optional[str] = None
    original_date: Optional[datetime] = None
    keep_source: bool = False

@dataclass(frozen=True)
class ImportAssetResponse(UseCaseResponse):
    asset_id: str = ""
    duplicate: bool = False

class ImportAssetUseCase(UseCase):
    """Add a file to the collection, or find the record it duplicates."""

    def __init__(
        self,
        record_repo: IRecordRepository,
        blob_repo: IBlobRepository,
        event_bus: EventBus,
    ):
        self._records = record_repo
        self._blobs = blob_repo
        self._event_bus = event_bus
        self._logger = logging.getLogger(__name__)

    def execute(self, request: ImportAssetRequest) -> ImportAssetResponse:
        path = Path(request.filepath)
        try:
            stat = path.stat()
            checksum = checksum_file(path)
        except OSError as exc:
            raise ImportFailedError(f"Cannot read {path}: {exc}") from exc

        asset = self._records.get_asset_by_digest(checksum)
        duplicate = asset is not None
        if asset is None:
            now = datetime.now(timezone.utc)
            filename = request.filename or path.name
            media_type = (request.media_type or infer_media_type(filename)).lower()
            original_date = request.original_date or datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            asset = Asset(
                key=new_asset_id(now, media_type),
                checksum=checksum,
                filename=filename,
                byte_length=stat.st_size,
                media_type=media_type,
                import_date=now,
                original_date=original_date,
            )
            self._records.put_asset(asset)
            self._logger.info("[IMPORT] %s -> %s", path, asset.key)
        else:
            self._logger.info("[IMPORT] %s duplicates %s", path, asset.key)

        self._blobs.store_blob(path, asset, keep_source=request.keep_source)
        self._event_bus.publish(AssetImportedEvent(
            source="import",
            asset_id=asset.key,
            checksum=checksum,
            duplicate=duplicate,
        ))
        return ImportAssetResponse(asset_id=asset.key, duplicate=duplicate)
