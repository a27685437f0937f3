import os
import stat

import pytest

from tanuki.domain.models import Asset
from tanuki.errors import BlobStoreError
from tanuki.infrastructure.repositories.local_blob_repository import LocalBlobRepository
from tanuki.utils.pathutils import encode_identifier

KEY = encode_identifier("2024/01/01/0000/abc.jpg")


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobRepository(tmp_path / "assets")


def test_store_moves_file_into_place(tmp_path, blobs):
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"pixels")
    blobs.store_blob(source, Asset(key=KEY))

    destination = tmp_path / "assets" / "2024" / "01" / "01" / "0000" / "abc.jpg"
    assert destination.read_bytes() == b"pixels"
    assert stat.S_IMODE(os.stat(destination).st_mode) == 0o644
    assert not source.exists()


def test_keep_source(tmp_path, blobs):
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"pixels")
    blobs.store_blob(source, Asset(key=KEY), keep_source=True)
    assert source.exists()
    assert blobs.blob_path(KEY).exists()


def test_existing_blob_is_not_overwritten(tmp_path, blobs):
    first = tmp_path / "first.jpg"
    first.write_bytes(b"original")
    blobs.store_blob(first, Asset(key=KEY))

    second = tmp_path / "second.jpg"
    second.write_bytes(b"replacement")
    blobs.store_blob(second, Asset(key=KEY))
    assert blobs.blob_path(KEY).read_bytes() == b"original"
    assert not second.exists()


def test_missing_source_raises(tmp_path, blobs):
    with pytest.raises(BlobStoreError):
        blobs.store_blob(tmp_path / "missing.jpg", Asset(key=KEY))


def test_delete_blob(tmp_path, blobs):
    source = tmp_path / "photo.jpg"
    source.write_bytes(b"pixels")
    blobs.store_blob(source, Asset(key=KEY))
    blobs.delete_blob(KEY)
    assert not blobs.blob_path(KEY).exists()
    blobs.delete_blob(KEY)


def test_urls(blobs):
    assert blobs.asset_url(KEY) == f"/assets/raw/{KEY}"
    assert blobs.thumbnail_url(KEY, 320, 240) == f"/assets/thumbnail/320/240/{KEY}"
