import json
from datetime import datetime, timezone

import pytest

from tanuki.application.use_cases import (
    DumpAssetsRequest,
    DumpAssetsUseCase,
    LoadAssetsRequest,
    LoadAssetsUseCase,
)
from tanuki.application.use_cases.transfer_assets import asset_from_record, asset_to_record
from tanuki.domain.models import Location
from tanuki.errors import ImportFailedError
from tanuki.events import AssetsRestoredEvent, EventBus


@pytest.fixture
def event_bus():
    bus = EventBus()
    yield bus
    bus.shutdown()


def test_record_round_trip(make_asset):
    asset = make_asset(
        tags=["a", "b"],
        caption="hello",
        location=Location("Home", None, "Oregon"),
        user_date=datetime(2020, 1, 1, 12, 30, tzinfo=timezone.utc),
    )
    record = asset_to_record(asset)
    assert record["import_date"] == "2024-01-01T00:00:00+00:00"
    assert record["original_date"] is None
    assert asset_from_record(json.loads(json.dumps(record))) == asset


def test_dump_writes_every_record_in_key_order(tmp_path, sqlite_repo, make_asset):
    assets = [make_asset() for _ in range(5)]
    sqlite_repo.store_assets(assets)
    path = tmp_path / "dump.json"

    response = DumpAssetsUseCase(sqlite_repo).execute(DumpAssetsRequest(path=path, batch_size=2))

    assert response.count == 5
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["key"] for line in lines] == sorted(asset.key for asset in assets)


def test_dump_empty_store(tmp_path, document_repo):
    path = tmp_path / "dump.json"
    assert DumpAssetsUseCase(document_repo).execute(DumpAssetsRequest(path=path)).count == 0
    assert path.read_text(encoding="utf-8") == ""


def test_dump_from_one_backend_loads_into_the_other(tmp_path, sqlite_repo, document_repo, make_asset, event_bus):
    assets = [
        make_asset(tags=["x"], location=Location(city="Oslo")),
        make_asset(caption="c", user_date=datetime(2001, 1, 1, tzinfo=timezone.utc)),
        make_asset(original_date=datetime(1999, 12, 31, tzinfo=timezone.utc)),
    ]
    sqlite_repo.store_assets(assets)
    path = tmp_path / "dump.json"
    DumpAssetsUseCase(sqlite_repo).execute(DumpAssetsRequest(path=path))

    restored = []
    event_bus.subscribe(AssetsRestoredEvent, restored.append)
    load = LoadAssetsUseCase(document_repo, event_bus)
    assert load.execute(LoadAssetsRequest(path=path, batch_size=2)).count == 3
    assert load.execute(LoadAssetsRequest(path=path)).count == 3

    assert document_repo.count_assets() == 3
    for asset in assets:
        assert document_repo.get_asset_by_id(asset.key) == asset
    assert [event.asset_count for event in restored] == [3, 3]


def test_load_rejects_bad_input(tmp_path, sqlite_repo, event_bus):
    path = tmp_path / "dump.json"
    path.write_text('{"key": "abc"}\n', encoding="utf-8")
    with pytest.raises(ImportFailedError):
        LoadAssetsUseCase(sqlite_repo, event_bus).execute(LoadAssetsRequest(path=path))

    path.write_text("not json\n", encoding="utf-8")
    with pytest.raises(ImportFailedError):
        LoadAssetsUseCase(sqlite_repo, event_bus).execute(LoadAssetsRequest(path=path))

    with pytest.raises(ImportFailedError):
        LoadAssetsUseCase(sqlite_repo, event_bus).execute(LoadAssetsRequest(path=tmp_path / "missing.json"))
