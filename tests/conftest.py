import itertools
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from tanuki.domain.models import Asset  # noqa: E402
from tanuki.infrastructure.db.pool import ConnectionPool  # noqa: E402
from tanuki.infrastructure.docstore import MAPPERS, DocumentDatabase  # noqa: E402
from tanuki.infrastructure.repositories.document_record_repository import (  # noqa: E402
    DocumentRecordRepository,
)
from tanuki.infrastructure.repositories.sqlite_record_repository import SQLiteRecordRepository  # noqa: E402
from tanuki.utils.pathutils import encode_identifier  # noqa: E402


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def sqlite_repo(tmp_path):
    repo = SQLiteRecordRepository(ConnectionPool(tmp_path / "records.sqlite"))
    repo.initialize()
    yield repo
    repo.close()


@pytest.fixture
def document_repo(tmp_path):
    database = DocumentDatabase(ConnectionPool(tmp_path / "records.db"), MAPPERS)
    repo = DocumentRecordRepository(database, heartbeat_ms=0, conflict_backoff=0)
    repo.initialize()
    yield repo
    repo.close()


@pytest.fixture(params=["sqlite", "document"])
def record_repo(request):
    """Each record backend in turn; both must behave identically."""
    return request.getfixturevalue(f"{request.param}_repo")


@pytest.fixture
def make_asset():
    """Factory for assets with unique keys and checksums."""

    counter = itertools.count(1)

    def _make(**fields) -> Asset:
        n = next(counter)
        values = {
            "key": encode_identifier(f"2024/01/01/0000/asset{n:04d}.jpg"),
            "checksum": f"xxh3-128-{n:032x}",
            "filename": f"img_{n:04d}.jpg",
            "byte_length": 1024 * n,
            "media_type": "image/jpeg",
            "import_date": utc(2024, 1, 1),
        }
        values.update(fields)
        return Asset(**values)

    return _make
