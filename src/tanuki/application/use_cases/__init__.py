from .base import UseCase, UseCaseRequest, UseCaseResponse
from .import_asset import ImportAssetUseCase, ImportAssetRequest, ImportAssetResponse
from .update_asset import UpdateAssetUseCase, UpdateAssetRequest, UpdateAssetResponse
from .edit_assets import EditAssetsUseCase, EditAssetsRequest, EditAssetsResponse
from .transfer_assets import (
    DumpAssetsUseCase, DumpAssetsRequest, DumpAssetsResponse,
    LoadAssetsUseCase, LoadAssetsRequest, LoadAssetsResponse,
)
