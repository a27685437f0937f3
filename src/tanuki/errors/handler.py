"""Central reporting point for failures that should not pass silently.

Record backends report initialization failures here before the error is
re-raised, so that anything subscribed to :class:`ErrorOccurredEvent` on the
event bus (the CLI, tests) sees them even when the caller swallows the
exception later on.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from tanuki.events.bus import Event, EventBus

EscalationCallback = Callable[[str, "ErrorSeverity"], None]


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_ESCALATED = (ErrorSeverity.ERROR, ErrorSeverity.CRITICAL)


@dataclass(kw_only=True)
class ErrorOccurredEvent(Event):
    error: Exception
    severity: ErrorSeverity
    context: Dict[str, str] = field(default_factory=dict)


def _describe(error: Exception, context: Dict[str, str]) -> str:
    message = f"{type(error).__name__}: {error}"
    if context:
        details = ", ".join(f"{key}={value}" for key, value in sorted(context.items()))
        message = f"{message} ({details})"
    return message


class ErrorHandler:
    """Log an error at its severity and publish it on the event bus."""

    def __init__(self, logger: logging.Logger, event_bus: EventBus):
        self._logger = logger
        self._events = event_bus
        self._escalation_callbacks: List[EscalationCallback] = []

    def register_escalation_callback(self, callback: EscalationCallback) -> None:
        self._escalation_callbacks.append(callback)

    def handle(
        self,
        error: Exception,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[Dict[str, str]] = None,
    ) -> None:
        context = dict(context or {})
        log_method = getattr(self._logger, severity.value, self._logger.error)
        log_method(_describe(error, context))

        self._events.publish(ErrorOccurredEvent(error=error, severity=severity, context=context))

        if severity in _ESCALATED:
            for callback in self._escalation_callbacks:
                callback(str(error), severity)
