import logging
from unittest.mock import Mock

from tanuki.errors import (
    AssetNotFoundError,
    DomainError,
    ImportFailedError,
    InfrastructureError,
    ApplicationError,
    RecordConflictError,
    RepositoryInitError,
    TanukiError,
)
from tanuki.errors.handler import ErrorHandler, ErrorOccurredEvent, ErrorSeverity
from tanuki.events.bus import EventBus


def test_handle_error_logs_and_publishes():
    logger = Mock(spec=logging.Logger)
    event_bus = Mock(spec=EventBus)
    handler = ErrorHandler(logger, event_bus)

    error = RepositoryInitError("cannot open store")
    handler.handle(error, ErrorSeverity.CRITICAL, context={"backend": "sqlite"})

    logger.critical.assert_called()
    event = event_bus.publish.call_args[0][0]
    assert isinstance(event, ErrorOccurredEvent)
    assert event.error is error
    assert event.severity == ErrorSeverity.CRITICAL
    assert event.context == {"backend": "sqlite"}


def test_escalation_callback():
    handler = ErrorHandler(Mock(spec=logging.Logger), Mock(spec=EventBus))
    callback = Mock()
    handler.register_escalation_callback(callback)

    handler.handle(RecordConflictError("lost race"), ErrorSeverity.ERROR)

    callback.assert_called_with("lost race", ErrorSeverity.ERROR)


def test_info_and_warning_are_not_escalated():
    logger = Mock(spec=logging.Logger)
    handler = ErrorHandler(logger, Mock(spec=EventBus))
    callback = Mock()
    handler.register_escalation_callback(callback)

    handler.handle(Exception("info"), ErrorSeverity.INFO)
    handler.handle(Exception("careful"), ErrorSeverity.WARNING)

    callback.assert_not_called()
    logger.info.assert_called()
    logger.warning.assert_called()


def test_error_hierarchy():
    assert issubclass(AssetNotFoundError, DomainError)
    assert issubclass(RepositoryInitError, InfrastructureError)
    assert issubclass(ImportFailedError, ApplicationError)
    for layer in (DomainError, InfrastructureError, ApplicationError):
        assert issubclass(layer, TanukiError)
