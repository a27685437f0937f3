import logging
import sqlite3

from .container import Container
from .lifetime import Lifetime
from tanuki.application.services.asset_service import AssetService
from tanuki.application.services.search_service import SearchService
from tanuki.application.use_cases import (
    DumpAssetsUseCase,
    EditAssetsUseCase,
    ImportAssetUseCase,
    LoadAssetsUseCase,
    UpdateAssetUseCase,
)
from tanuki.domain.repositories import IBlobRepository, IRecordRepository
from tanuki.errors import RepositoryInitError
from tanuki.errors.handler import ErrorHandler, ErrorSeverity
from tanuki.events.bus import EventBus
from tanuki.infrastructure.db.pool import ConnectionPool
from tanuki.infrastructure.docstore import MAPPERS, DocumentDatabase
from tanuki.infrastructure.repositories.document_record_repository import DocumentRecordRepository
from tanuki.infrastructure.repositories.local_blob_repository import LocalBlobRepository
from tanuki.infrastructure.repositories.sqlite_record_repository import SQLiteRecordRepository
from tanuki.settings import Settings
from tanuki.utils.logging import get_logger

_logger = logging.getLogger(__name__)


def create_record_repository(settings: Settings) -> IRecordRepository:
    """Build the record backend named by ``settings.record_backend``."""

    if settings.record_backend == "document":
        database = DocumentDatabase(ConnectionPool(settings.docstore_path), MAPPERS)
        return DocumentRecordRepository(
            database,
            heartbeat_ms=settings.heartbeat_ms,
            conflict_retries=settings.conflict_retries,
            conflict_backoff=settings.conflict_backoff,
        )
    if settings.record_backend == "sqlite":
        return SQLiteRecordRepository(ConnectionPool(settings.sqlite_path))
    raise RepositoryInitError(f"Unknown record backend: {settings.record_backend!r}")


def _record_repository(container: Container) -> IRecordRepository:
    settings = container.resolve(Settings)
    try:
        repo = create_record_repository(settings)
        repo.initialize()
    except (RepositoryInitError, OSError, sqlite3.Error) as exc:
        error = exc if isinstance(exc, RepositoryInitError) else RepositoryInitError(str(exc))
        container.resolve(ErrorHandler).handle(
            error, ErrorSeverity.CRITICAL, context={"backend": settings.record_backend}
        )
        if error is exc:
            raise
        raise error from exc
    _logger.info("[BOOT] %s record backend ready", settings.record_backend)
    return repo


def bootstrap(container: Container, settings: Settings) -> None:
    """Register all application services in the DI container."""
    container.register_instance(Settings, settings)
    container.register_singleton(EventBus, EventBus)
    container.register_factory(
        ErrorHandler,
        lambda c: ErrorHandler(get_logger(), c.resolve(EventBus)),
        Lifetime.SINGLETON,
    )
    container.register_factory(IRecordRepository, _record_repository, Lifetime.SINGLETON)
    container.register_factory(
        IBlobRepository, lambda c: LocalBlobRepository(settings.assets_path), Lifetime.SINGLETON
    )
    container.register_factory(SearchService, lambda c: SearchService(c.resolve(IRecordRepository)))

    container.register_factory(
        ImportAssetUseCase,
        lambda c: ImportAssetUseCase(c.resolve(IRecordRepository), c.resolve(IBlobRepository), c.resolve(EventBus)),
    )
    container.register_factory(
        UpdateAssetUseCase, lambda c: UpdateAssetUseCase(c.resolve(IRecordRepository), c.resolve(EventBus))
    )
    container.register_factory(
        EditAssetsUseCase, lambda c: EditAssetsUseCase(c.resolve(IRecordRepository), c.resolve(EventBus))
    )
    container.register_factory(DumpAssetsUseCase, lambda c: DumpAssetsUseCase(c.resolve(IRecordRepository)))
    container.register_factory(
        LoadAssetsUseCase, lambda c: LoadAssetsUseCase(c.resolve(IRecordRepository), c.resolve(EventBus))
    )
    container.register_factory(
        AssetService,
        lambda c: AssetService(
            c.resolve(IRecordRepository),
            search=c.resolve(SearchService),
            import_uc=c.resolve(ImportAssetUseCase),
            update_uc=c.resolve(UpdateAssetUseCase),
            edit_uc=c.resolve(EditAssetsUseCase),
            dump_uc=c.resolve(DumpAssetsUseCase),
            load_uc=c.resolve(LoadAssetsUseCase),
        ),
        Lifetime.SINGLETON,
    )


def shutdown(container: Container) -> None:
    """Close the record backend and stop background event handlers."""
    for instance in container.singletons():
        if isinstance(instance, IRecordRepository):
            instance.close()
        elif isinstance(instance, EventBus):
            instance.shutdown()
