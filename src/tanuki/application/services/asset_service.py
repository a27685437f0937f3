import logging
from pathlib import Path
from typing import List, Optional

from tanuki.application.services.pagination import ResultPage, paginate
from tanuki.application.services.search_service import SearchService
from tanuki.application.use_cases import (
    DumpAssetsRequest,
    EditAssetsRequest,
    ImportAssetRequest,
    LoadAssetsRequest,
    UpdateAssetRequest,
)
from tanuki.domain.models import (
    Asset,
    AssetInput,
    AttributeCount,
    Location,
    Operation,
    PendingParams,
    SearchParams,
    SearchResult,
)
from tanuki.domain.repositories import IRecordRepository


class AssetService:
    """
    Application Service Facade for asset records.
    Reads go straight to the repository (CQRS query side);
    writes are delegated to the use cases.
    """
    def __init__(
        self,
        record_repo: IRecordRepository,
        search: Optional[SearchService] = None,
        import_uc=None,
        update_uc=None,
        edit_uc=None,
        dump_uc=None,
        load_uc=None,
    ):
        self._repo = record_repo
        self._search = search or SearchService(record_repo)
        self._import_uc = import_uc
        self._update_uc = update_uc
        self._edit_uc = edit_uc
        self._dump_uc = dump_uc
        self._load_uc = load_uc
        self._logger = logging.getLogger(__name__)

    # -- query side -----------------------------------------------------------

    def count_assets(self) -> int:
        return self._repo.count_assets()

    def get_asset(self, asset_id: str) -> Optional[Asset]:
        return self._repo.get_asset_by_id(asset_id)

    def all_tags(self) -> List[AttributeCount]:
        return self._repo.all_tags()

    def all_locations(self) -> List[AttributeCount]:
        return self._repo.all_locations()

    def raw_locations(self) -> List[Location]:
        return self._repo.raw_locations()

    def all_years(self) -> List[AttributeCount]:
        return self._repo.all_years()

    def all_media_types(self) -> List[AttributeCount]:
        return self._repo.all_media_types()

    def search(
        self, params: SearchParams, offset: Optional[int] = None, limit: Optional[int] = None
    ) -> ResultPage[SearchResult]:
        return paginate(self._search.search(params), offset, limit)

    def find_pending(
        self, params: PendingParams, offset: Optional[int] = None, limit: Optional[int] = None
    ) -> ResultPage[SearchResult]:
        return paginate(self._search.find_pending(params), offset, limit)

    # -- write side -----------------------------------------------------------

    def import_asset(self, filepath: Path, keep_source: bool = False, **details):
        """Delegate to ImportAssetUseCase"""
        return self._require(self._import_uc, "import").execute(
            ImportAssetRequest(filepath=Path(filepath), keep_source=keep_source, **details)
        )

    def update_asset(self, changes: AssetInput) -> Asset:
        """Delegate to UpdateAssetUseCase"""
        return self._require(self._update_uc, "update").execute(UpdateAssetRequest(changes=changes)).asset

    def edit_assets(self, asset_ids: List[str], operations: List[Operation]) -> int:
        """Delegate to EditAssetsUseCase"""
        response = self._require(self._edit_uc, "edit").execute(
            EditAssetsRequest(asset_ids=list(asset_ids), operations=list(operations))
        )
        return response.changed_count

    def dump_assets(self, path: Path) -> int:
        return self._require(self._dump_uc, "dump").execute(DumpAssetsRequest(path=Path(path))).count

    def load_assets(self, path: Path) -> int:
        return self._require(self._load_uc, "load").execute(LoadAssetsRequest(path=Path(path))).count

    def _require(self, use_case, name: str):
        if use_case is None:
            raise RuntimeError(f"AssetService was built without the {name} use case")
        return use_case
