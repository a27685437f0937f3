import logging
import os
import shutil
from pathlib import Path

from tanuki.domain.models import Asset
from tanuki.domain.repositories import IBlobRepository
from tanuki.errors import BlobStoreError
from tanuki.utils.pathutils import decode_identifier

_logger = logging.getLogger(__name__)


class LocalBlobRepository(IBlobRepository):
    """Asset files stored beneath a directory, at the path encoded in the key."""

    def __init__(self, basepath: Path):
        self._basepath = Path(basepath)

    def blob_path(self, key: str) -> Path:
        return self._basepath / decode_identifier(key)

    def store_blob(self, filepath: Path, asset: Asset, keep_source: bool = False) -> None:
        destination = self.blob_path(asset.key)
        try:
            if not destination.exists():
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(str(filepath), str(destination))
                os.chmod(destination, 0o644)
                _logger.info("[BLOB-STORE] %s -> %s", filepath, destination)
            if not keep_source:
                Path(filepath).unlink()
        except OSError as exc:
            raise BlobStoreError(f"Cannot store {filepath} as {asset.key}: {exc}") from exc

    def delete_blob(self, key: str) -> None:
        self.blob_path(key).unlink(missing_ok=True)

    def asset_url(self, key: str) -> str:
        return f"/assets/raw/{key}"

    def thumbnail_url(self, key: str, width: int, height: int) -> str:
        return f"/assets/thumbnail/{width}/{height}/{key}"
