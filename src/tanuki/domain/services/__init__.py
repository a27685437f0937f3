from .caption import CaptionParts, parse_caption
from .matching import normalize_values, select_complete_matches

__all__ = ["CaptionParts", "normalize_values", "parse_caption", "select_complete_matches"]
