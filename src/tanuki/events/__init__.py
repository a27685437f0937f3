from .bus import Event, EventBus, Subscription
from .domain_events import (
    AssetImportedEvent,
    AssetsRestoredEvent,
    AssetUpdatedEvent,
    DomainEvent,
)

__all__ = [
    "AssetImportedEvent",
    "AssetUpdatedEvent",
    "AssetsRestoredEvent",
    "DomainEvent",
    "Event",
    "EventBus",
    "Subscription",
]
