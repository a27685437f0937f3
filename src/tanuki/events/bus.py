import logging
import threading
import uuid
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Type


@dataclass(kw_only=True)
class Event:
    """Base class for everything published on the bus."""
    timestamp: datetime = field(default_factory=datetime.now)
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))


@dataclass
class Subscription:
    """Handle returned by subscribe(); can be used to unsubscribe."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: Type = Event
    handler: Callable = field(default=lambda e: None)
    background: bool = False
    active: bool = True

    def cancel(self):
        self.active = False


class EventBus:
    """In-process publish/subscribe hub.

    Handlers subscribed with ``background=True`` run on a small thread pool
    that is created on first use, everything else runs inline in
    :meth:`publish`. A failing handler is logged and never propagates to the
    publisher.
    """

    def __init__(self, logger: logging.Logger = None, max_workers: int = 2):
        self._logger = logger or logging.getLogger(__name__)
        self._handlers: Dict[Type, List[Subscription]] = defaultdict(list)
        self._max_workers = max_workers
        self._executor: Optional[ThreadPoolExecutor] = None
        self._lock = threading.Lock()

    def subscribe(self, event_type: Type, handler: Callable, background: bool = False) -> Subscription:
        sub = Subscription(event_type=event_type, handler=handler, background=background)
        with self._lock:
            self._handlers[event_type].append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription):
        subscription.active = False
        with self._lock:
            subs = self._handlers.get(subscription.event_type, [])
            if subscription in subs:
                subs.remove(subscription)

    def publish(self, event) -> None:
        event_type = type(event)
        with self._lock:
            subs = list(self._handlers[event_type])

        for sub in subs:
            if not sub.active:
                continue
            if sub.background:
                self._pool().submit(self._safe_call, sub.handler, event)
            else:
                self._safe_call(sub.handler, event)

    def _pool(self) -> ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=self._max_workers)
            return self._executor

    def _safe_call(self, handler, event):
        try:
            handler(event)
        except Exception as e:
            self._logger.error("Handler failed for %s: %s", type(event).__name__, e)

    def shutdown(self):
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
