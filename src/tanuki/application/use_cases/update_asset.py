import logging
from dataclasses import dataclass
from typing import Optional

from .base import UseCase, UseCaseRequest, UseCaseResponse
from tanuki.domain.models import Asset, AssetInput, merge_location, normalize_tags
from tanuki.domain.repositories import IRecordRepository
from tanuki.domain.services.caption import parse_caption
from tanuki.errors import AssetNotFoundError
from tanuki.events.bus import EventBus
from tanuki.events.domain_events import AssetUpdatedEvent

@dataclass(frozen=True)
class UpdateAssetRequest(UseCaseRequest):
    changes: Optional[AssetInput] = None

@dataclass(frozen=True)
class UpdateAssetResponse(UseCaseResponse):
    asset: Optional[Asset] = None


def merge_asset_input(asset: Asset, changes: AssetInput) -> None:
    """Apply *changes* to *asset* in place."""

    if changes.tags is not None:
        asset.tags = sorted(normalize_tags(changes.tags))
    if changes.filename and changes.filename.strip():
        asset.filename = changes.filename.strip()
    if changes.location is not None:
        asset.location = merge_location(asset.location, changes.location)
    if changes.caption is not None:
        asset.caption = changes.caption or None
        parts = parse_caption(changes.caption)
        asset.tags = sorted(normalize_tags(asset.tags + parts.tags))
        # a caption location never overrides one already set
        if asset.location is None and parts.location is not None:
            asset.location = parts.location
    if changes.datetime is not None:
        asset.user_date = changes.datetime
    if changes.media_type and changes.media_type.strip():
        asset.media_type = changes.media_type.strip().lower()


class UpdateAssetUseCase(UseCase):
    def __init__(self, record_repo: IRecordRepository, event_bus: EventBus):
        self._records = record_repo
        self._event_bus = event_bus
        self._logger = logging.getLogger(__name__)

    def execute(self, request: UpdateAssetRequest) -> UpdateAssetResponse:
        changes = request.changes
        asset = self._records.get_asset_by_id(changes.key)
        if asset is None:
            raise AssetNotFoundError(f"Asset not found: {changes.key}")

        merge_asset_input(asset, changes)
        self._records.put_asset(asset)
        self._logger.info("[UPDATE] updated asset %s", asset.key)
        self._event_bus.publish(AssetUpdatedEvent(source="update", asset_ids=(asset.key,)))
        return UpdateAssetResponse(asset=asset)
