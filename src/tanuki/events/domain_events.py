from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True)
class DomainEvent:
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""


@dataclass(frozen=True)
class AssetImportedEvent(DomainEvent):
    asset_id: str = ""
    checksum: str = ""
    duplicate: bool = False


@dataclass(frozen=True)
class AssetUpdatedEvent(DomainEvent):
    asset_ids: tuple[str, ...] = ()


@dataclass(frozen=True)
class AssetsRestoredEvent(DomainEvent):
    asset_count: int = 0
