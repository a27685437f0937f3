import logging
from dataclasses import dataclass, field
from typing import List

from .base import UseCase, UseCaseRequest, UseCaseResponse
from tanuki.domain.models import Operation
from tanuki.domain.repositories import IRecordRepository
from tanuki.errors import AssetNotFoundError
from tanuki.events.bus import EventBus
from tanuki.events.domain_events import AssetUpdatedEvent

@dataclass(frozen=True)
class EditAssetsRequest(UseCaseRequest):
    asset_ids: List[str] = field(default_factory=list)
    operations: List[Operation] = field(default_factory=list)

@dataclass(frozen=True)
class EditAssetsResponse(UseCaseResponse):
    changed_count: int = 0

class EditAssetsUseCase(UseCase):
    """Apply the same operations to several assets; only changed ones are saved."""

    def __init__(self, record_repo: IRecordRepository, event_bus: EventBus):
        self._records = record_repo
        self._event_bus = event_bus
        self._logger = logging.getLogger(__name__)

    def execute(self, request: EditAssetsRequest) -> EditAssetsResponse:
        changed = []
        for asset_id in request.asset_ids:
            asset = self._records.get_asset_by_id(asset_id)
            if asset is None:
                raise AssetNotFoundError(f"Asset not found: {asset_id}")
            modified = False
            for operation in request.operations:
                if operation.perform(asset):
                    modified = True
            if modified:
                self._records.put_asset(asset)
                changed.append(asset_id)

        if changed:
            self._logger.info("[EDIT] modified %d of %d assets", len(changed), len(request.asset_ids))
            self._event_bus.publish(AssetUpdatedEvent(source="edit", asset_ids=tuple(changed)))
        return EditAssetsResponse(changed_count=len(changed))
