import threading
from unittest.mock import patch

import pytest

from tanuki.errors import DocumentConflictError, RecordConflictError, RepositoryInitError
from tanuki.infrastructure.db.pool import ConnectionPool
from tanuki.infrastructure.docstore import ASSETS_DESIGN, DESIGN_ID, MAPPERS, DocumentDatabase
from tanuki.infrastructure.repositories import document_record_repository
from tanuki.infrastructure.repositories.document_record_repository import (
    DocumentRecordRepository,
    asset_from_document,
    asset_to_document,
)


@pytest.fixture
def database(tmp_path):
    return DocumentDatabase(ConnectionPool(tmp_path / "records.db"), MAPPERS)


def test_document_round_trip(make_asset):
    asset = make_asset(tags=["a"], caption="hi")
    doc = asset_to_document(asset)
    assert doc["_id"] == asset.key
    assert doc["location"] is None
    assert isinstance(doc["import_date"], int)
    assert asset_from_document(doc) == asset


def test_initialize_installs_design(database):
    repo = DocumentRecordRepository(database, heartbeat_ms=0)
    repo.initialize()
    assert database.get(DESIGN_ID)["version"] == ASSETS_DESIGN["version"]
    assert repo.count_assets() == 0
    repo.close()


def test_initialize_wraps_storage_errors(tmp_path):
    path = tmp_path / "corrupt.db"
    path.write_bytes(b"this is not a database" * 100)
    repo = DocumentRecordRepository(DocumentDatabase(ConnectionPool(path), MAPPERS), heartbeat_ms=0)
    with pytest.raises(RepositoryInitError):
        repo.initialize()


class TestConflicts:
    def test_conflicts_are_retried_with_backoff(self, database, make_asset, monkeypatch):
        repo = DocumentRecordRepository(database, heartbeat_ms=0, conflict_retries=3, conflict_backoff=0.1)
        repo.initialize()
        delays = []
        monkeypatch.setattr(document_record_repository.time, "sleep", delays.append)

        real_insert = database.insert
        attempts = []

        def flaky_insert(doc):
            attempts.append(doc["_id"])
            if len(attempts) <= 2:
                raise DocumentConflictError("concurrent writer")
            return real_insert(doc)

        asset = make_asset()
        with patch.object(database, "insert", side_effect=flaky_insert):
            repo.put_asset(asset)

        assert len(attempts) == 3
        assert delays == pytest.approx([0.1, 0.2])
        assert repo.get_asset_by_id(asset.key) == asset
        repo.close()

    def test_gives_up_after_retries(self, database, make_asset, monkeypatch):
        repo = DocumentRecordRepository(database, heartbeat_ms=0, conflict_retries=2, conflict_backoff=0.01)
        repo.initialize()
        monkeypatch.setattr(document_record_repository.time, "sleep", lambda delay: None)

        with patch.object(database, "insert", side_effect=DocumentConflictError("always")) as insert:
            with pytest.raises(RecordConflictError):
                repo.put_asset(make_asset())
        assert insert.call_count == 3
        repo.close()

    def test_update_reads_current_revision(self, database, make_asset):
        repo = DocumentRecordRepository(database, heartbeat_ms=0)
        repo.initialize()
        asset = make_asset()
        repo.put_asset(asset)
        asset.tags = ["x"]
        repo.put_asset(asset)
        assert database.get(asset.key)["_rev"].startswith("2-")
        repo.close()


class TestHeartbeat:
    def test_polls_changes_feed(self, database):
        repo = DocumentRecordRepository(database, heartbeat_ms=10)
        polled = threading.Event()
        real_changes = database.changes

        def changes(**kwargs):
            polled.set()
            return real_changes(**kwargs)

        with patch.object(database, "changes", side_effect=changes) as mocked:
            repo.initialize()
            assert polled.wait(2)
            repo.close()
        assert mocked.call_args.kwargs == {"since": "now", "limit": 1}

    def test_disabled_heartbeat_starts_no_thread(self, database):
        repo = DocumentRecordRepository(database, heartbeat_ms=0)
        repo.initialize()
        assert repo._heartbeat is None
        repo.close()

    def test_poll_failure_is_logged_not_raised(self, database, caplog):
        repo = DocumentRecordRepository(database, heartbeat_ms=10)
        failed = threading.Event()

        def broken(**kwargs):
            failed.set()
            raise DocumentConflictError("feed unavailable")

        with patch.object(database, "changes", side_effect=broken):
            repo.initialize()
            assert failed.wait(2)
            repo.close()
        assert any("changes feed poll failed" in record.message for record in caplog.records)
