"""Backend-agnostic "every value must match" selection.

Secondary indices can only prove that an asset matched *one* of several
requested values. Backends feed every (asset, matched value, result) row
they found into :func:`select_complete_matches`, which keeps the assets
that matched all of them.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List, Set, Tuple

from ..models import SearchResult

MatchRow = Tuple[str, str, SearchResult]


def normalize_values(values: Iterable[str]) -> List[str]:
    """Lower-case, de-duplicate and sort the requested values."""

    return sorted({value.lower() for value in values if value})


def select_complete_matches(rows: Iterable[MatchRow], wanted: Iterable[str]) -> List[SearchResult]:
    """Return one result per asset that matched every value in *wanted*.

    An asset counts each distinct requested value once, so a value matching
    two of its fields (a city and a region both named "Georgia") still
    counts as a single match.
    """

    expected = set(normalize_values(wanted))
    if not expected:
        return []

    rows = list(rows)
    matched: Dict[str, Set[str]] = defaultdict(set)
    for asset_id, value, _ in rows:
        if value in expected:
            matched[asset_id].add(value)

    complete = [row for row in rows if len(matched[row[0]]) == len(expected)]
    complete.sort(key=lambda row: row[0])
    unique = [
        row for idx, row in enumerate(complete)
        if idx == 0 or row[0] != complete[idx - 1][0]
    ]
    return [row[2] for row in unique]
