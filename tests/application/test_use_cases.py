"""Write-side use cases run against a real SQLite record store."""

import os
from datetime import datetime, timezone
from unittest.mock import Mock

import pytest

from tanuki.application.use_cases import (
    EditAssetsRequest,
    EditAssetsUseCase,
    ImportAssetRequest,
    ImportAssetUseCase,
    UpdateAssetRequest,
    UpdateAssetUseCase,
)
from tanuki.domain.models import (
    AssetInput,
    Location,
    LocationInput,
    TagAdd,
    TagRemove,
)
from tanuki.errors import AssetNotFoundError, ImportFailedError
from tanuki.events import AssetImportedEvent, AssetUpdatedEvent, EventBus
from tanuki.infrastructure.repositories.local_blob_repository import LocalBlobRepository
from tanuki.utils.hashutils import checksum_file


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def event_bus():
    bus = EventBus()
    yield bus
    bus.shutdown()


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobRepository(tmp_path / "assets")


class TestImportAsset:
    @pytest.fixture
    def use_case(self, sqlite_repo, blobs, event_bus):
        return ImportAssetUseCase(sqlite_repo, blobs, event_bus)

    def test_new_file_is_recorded_and_stored(self, tmp_path, use_case, sqlite_repo, blobs, event_bus):
        events = []
        event_bus.subscribe(AssetImportedEvent, events.append)
        source = tmp_path / "IMG_0001.JPG"
        source.write_bytes(b"jpeg bytes")
        checksum = checksum_file(source)

        response = use_case.execute(ImportAssetRequest(filepath=source, original_date=utc(2019, 5, 5)))

        assert not response.duplicate
        asset = sqlite_repo.get_asset_by_id(response.asset_id)
        assert asset.checksum == checksum
        assert asset.filename == "IMG_0001.JPG"
        assert asset.byte_length == len(b"jpeg bytes")
        assert asset.media_type == "image/jpeg"
        assert asset.original_date == utc(2019, 5, 5)
        assert asset.filepath.endswith(".jpg")
        assert blobs.blob_path(asset.key).read_bytes() == b"jpeg bytes"
        assert not source.exists()
        assert [(e.asset_id, e.duplicate) for e in events] == [(asset.key, False)]

    def test_same_content_reuses_existing_record(self, tmp_path, use_case, sqlite_repo):
        first = tmp_path / "first.jpg"
        first.write_bytes(b"same bytes")
        original = use_case.execute(ImportAssetRequest(filepath=first))

        second = tmp_path / "copy of first.jpg"
        second.write_bytes(b"same bytes")
        again = use_case.execute(ImportAssetRequest(filepath=second, keep_source=True))

        assert again.duplicate
        assert again.asset_id == original.asset_id
        assert sqlite_repo.count_assets() == 1
        assert second.exists()

    def test_details_override_inference(self, tmp_path, use_case, sqlite_repo):
        source = tmp_path / "upload.bin"
        source.write_bytes(b"movie")
        response = use_case.execute(
            ImportAssetRequest(filepath=source, filename="holiday.mov", media_type="Video/QuickTime")
        )
        asset = sqlite_repo.get_asset_by_id(response.asset_id)
        assert asset.filename == "holiday.mov"
        assert asset.media_type == "video/quicktime"
        assert asset.filepath.endswith(".mov")

    def test_modification_time_is_fallback_original_date(self, tmp_path, use_case, sqlite_repo):
        source = tmp_path / "old.png"
        source.write_bytes(b"png")
        stamp = utc(2015, 8, 9, 10, 11, 12).timestamp()
        os.utime(source, (stamp, stamp))
        response = use_case.execute(ImportAssetRequest(filepath=source))
        assert sqlite_repo.get_asset_by_id(response.asset_id).original_date == utc(2015, 8, 9, 10, 11, 12)

    def test_unreadable_file(self, tmp_path, use_case):
        with pytest.raises(ImportFailedError):
            use_case.execute(ImportAssetRequest(filepath=tmp_path / "missing.jpg"))


class TestUpdateAsset:
    @pytest.fixture
    def use_case(self, sqlite_repo, event_bus):
        return UpdateAssetUseCase(sqlite_repo, event_bus)

    @pytest.fixture
    def asset(self, sqlite_repo, make_asset):
        asset = make_asset(tags=["old"], location=Location("Home", "Paris", "France"))
        sqlite_repo.put_asset(asset)
        return asset

    def _update(self, use_case, key, **changes):
        return use_case.execute(UpdateAssetRequest(changes=AssetInput(key=key, **changes))).asset

    def test_tags_are_replaced_sorted_and_unique(self, use_case, asset, sqlite_repo):
        self._update(use_case, asset.key, tags=["zebra", " apple ", "Apple", ""])
        assert sqlite_repo.get_asset_by_id(asset.key).tags == ["apple", "zebra"]

    def test_empty_tag_list_clears_tags(self, use_case, asset, sqlite_repo):
        self._update(use_case, asset.key, tags=[])
        assert sqlite_repo.get_asset_by_id(asset.key).tags == []

    def test_caption_adds_tags_but_not_location_over_existing(self, use_case, asset, sqlite_repo):
        self._update(use_case, asset.key, caption="lunch #food @Elsewhere")
        stored = sqlite_repo.get_asset_by_id(asset.key)
        assert stored.caption == "lunch #food @Elsewhere"
        assert stored.tags == ["food", "old"]
        assert stored.location == Location("Home", "Paris", "France")

    def test_caption_location_used_when_none_set(self, use_case, sqlite_repo, make_asset):
        bare = make_asset()
        sqlite_repo.put_asset(bare)
        self._update(use_case, bare.key, caption='@"Paris, France"')
        assert sqlite_repo.get_asset_by_id(bare.key).location == Location(None, "Paris", "France")

    def test_location_fields_merge(self, use_case, asset, sqlite_repo):
        self._update(use_case, asset.key, location=LocationInput(label="", city="Lyon"))
        assert sqlite_repo.get_asset_by_id(asset.key).location == Location(None, "Lyon", "France")

    def test_datetime_media_type_and_filename(self, use_case, asset, sqlite_repo):
        self._update(
            use_case, asset.key, datetime=utc(2001, 2, 3), media_type=" IMAGE/PNG ", filename=" new.png "
        )
        stored = sqlite_repo.get_asset_by_id(asset.key)
        assert stored.user_date == utc(2001, 2, 3)
        assert stored.best_date == utc(2001, 2, 3)
        assert stored.media_type == "image/png"
        assert stored.filename == "new.png"

    def test_blank_filename_is_ignored(self, use_case, asset, sqlite_repo):
        self._update(use_case, asset.key, filename="   ")
        assert sqlite_repo.get_asset_by_id(asset.key).filename == asset.filename

    def test_immutable_fields_untouched(self, use_case, asset, sqlite_repo):
        self._update(use_case, asset.key, tags=["x"])
        stored = sqlite_repo.get_asset_by_id(asset.key)
        assert stored.checksum == asset.checksum
        assert stored.import_date == asset.import_date

    def test_unknown_asset(self, use_case):
        with pytest.raises(AssetNotFoundError):
            self._update(use_case, "bm9wZQ==", tags=["x"])

    def test_publishes_update(self, use_case, asset, event_bus):
        handler = Mock()
        event_bus.subscribe(AssetUpdatedEvent, handler)
        self._update(use_case, asset.key, tags=["x"])
        assert handler.call_args[0][0].asset_ids == (asset.key,)


class TestEditAssets:
    @pytest.fixture
    def use_case(self, sqlite_repo, event_bus):
        return EditAssetsUseCase(sqlite_repo, event_bus)

    def test_only_changed_assets_are_counted(self, use_case, sqlite_repo, make_asset, event_bus):
        tagged = make_asset(tags=["trip"])
        untagged = make_asset()
        sqlite_repo.put_asset(tagged)
        sqlite_repo.put_asset(untagged)
        events = []
        event_bus.subscribe(AssetUpdatedEvent, events.append)

        response = use_case.execute(
            EditAssetsRequest(asset_ids=[tagged.key, untagged.key], operations=[TagAdd("trip")])
        )

        assert response.changed_count == 1
        assert sqlite_repo.get_asset_by_id(untagged.key).tags == ["trip"]
        assert events[0].asset_ids == (untagged.key,)

    def test_nothing_changed_publishes_nothing(self, use_case, sqlite_repo, make_asset, event_bus):
        asset = make_asset()
        sqlite_repo.put_asset(asset)
        handler = Mock()
        event_bus.subscribe(AssetUpdatedEvent, handler)
        response = use_case.execute(EditAssetsRequest(asset_ids=[asset.key], operations=[TagRemove("none")]))
        assert response.changed_count == 0
        handler.assert_not_called()

    def test_unknown_asset(self, use_case):
        with pytest.raises(AssetNotFoundError):
            use_case.execute(EditAssetsRequest(asset_ids=["bm9wZQ=="], operations=[TagAdd("x")]))
