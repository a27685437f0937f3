from .database import DocumentDatabase
from .views import ASSETS_DESIGN, BEST_DATE_FIELDS, DESIGN_ID, MAPPERS

__all__ = ["ASSETS_DESIGN", "BEST_DATE_FIELDS", "DESIGN_ID", "DocumentDatabase", "MAPPERS"]
