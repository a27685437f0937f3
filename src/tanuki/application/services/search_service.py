import logging
from typing import Callable, Dict, List, Optional

from tanuki.domain.models import PendingParams, SearchParams, SearchResult, SortField, SortOrder
from tanuki.domain.repositories import IRecordRepository
from tanuki.utils.timeutils import EPOCH_MIN, ensure_utc

_SORT_KEYS: Dict[SortField, Callable[[SearchResult], object]] = {
    SortField.DATE: lambda result: ensure_utc(result.datetime),
    SortField.IDENTIFIER: lambda result: result.asset_id,
    SortField.FILENAME: lambda result: result.filename.lower(),
    SortField.MEDIA_TYPE: lambda result: result.media_type.lower(),
}


def sort_results(
    results: List[SearchResult],
    sort_field: Optional[SortField] = None,
    sort_order: Optional[SortOrder] = None,
) -> List[SearchResult]:
    """Sort by *sort_field* (identifier by default), ascending unless told otherwise."""
    primary = _SORT_KEYS[sort_field or SortField.IDENTIFIER]
    # ties fall back to the identifier
    return sorted(
        results,
        key=lambda result: (primary(result), result.asset_id),
        reverse=sort_order == SortOrder.DESCENDING,
    )


class SearchService:
    """Combine the single-criterion repository queries into one search.

    Each populated criterion maps to one repository call; the results are
    intersected by asset identifier.
    """

    def __init__(self, record_repo: IRecordRepository):
        self._records = record_repo
        self._logger = logging.getLogger(__name__)

    def search(self, params: SearchParams) -> List[SearchResult]:
        if params.is_empty():
            return []

        batches: List[List[SearchResult]] = []
        if params.tags:
            batches.append(self._records.query_by_tags(params.tags))
        if params.locations:
            batches.append(self._records.query_by_locations(params.locations))
        if params.media_type:
            batches.append(self._records.query_by_media_type(params.media_type))
        if params.filename:
            batches.append(self._records.query_by_filename(params.filename))
        if params.after is not None and params.before is not None:
            batches.append(self._records.query_date_range(params.after, params.before))
        elif params.before is not None:
            batches.append(self._records.query_before_date(params.before))
        elif params.after is not None:
            batches.append(self._records.query_after_date(params.after))

        results = batches[0]
        for batch in batches[1:]:
            wanted = {result.asset_id for result in batch}
            results = [result for result in results if result.asset_id in wanted]

        self._logger.info("[SEARCH] %d criteria matched %d assets", len(batches), len(results))
        return sort_results(results, params.sort_field, params.sort_order)

    def find_pending(self, params: PendingParams) -> List[SearchResult]:
        results = self._records.query_newborn(params.after or EPOCH_MIN)
        return sort_results(results, params.sort_field, params.sort_order)
