"""Default configuration values for tanuki."""

from __future__ import annotations

from pathlib import Path
from typing import Final

# Result pages hold DEFAULT_PAGE_LIMIT items unless the caller asks for a
# different size, which is clamped to [1, MAX_PAGE_LIMIT].
DEFAULT_PAGE_LIMIT: Final[int] = 16
MAX_PAGE_LIMIT: Final[int] = 256

# Records exported per fetch_assets() call during dump.
DUMP_BATCH_SIZE: Final[int] = 100

DEFAULT_DATA_DIR: Final[Path] = Path.home() / ".tanuki"
DEFAULT_SQLITE_PATH: Final[Path] = DEFAULT_DATA_DIR / "tanuki.sqlite"
DEFAULT_DOCSTORE_PATH: Final[Path] = DEFAULT_DATA_DIR / "records.db"
DEFAULT_ASSETS_PATH: Final[Path] = DEFAULT_DATA_DIR / "assets"

DEFAULT_HEARTBEAT_MS: Final[int] = 60000
DEFAULT_CONFLICT_RETRIES: Final[int] = 5
DEFAULT_CONFLICT_BACKOFF: Final[float] = 0.05

SETTINGS_ENV_PREFIX: Final[str] = "TANUKI_"
SETTINGS_FILE_ENV: Final[str] = "TANUKI_SETTINGS"
