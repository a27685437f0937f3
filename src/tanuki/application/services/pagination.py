"""Slice sorted results into pages."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Generic, List, Optional, Sequence, TypeVar

from tanuki.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT

T = TypeVar("T")


@dataclass
class ResultPage(Generic[T]):
    """One page of results plus the totals needed to render pagination."""

    results: List[T] = field(default_factory=list)
    count: int = 0
    last_page: int = 1


def clamp_limit(limit: Optional[int]) -> int:
    if limit is None:
        return DEFAULT_PAGE_LIMIT
    return max(1, min(limit, MAX_PAGE_LIMIT))


def paginate(results: Sequence[T], offset: Optional[int] = None, limit: Optional[int] = None) -> ResultPage[T]:
    count = len(results)
    start = max(0, min(offset or 0, count))
    size = clamp_limit(limit)
    last_page = 1 if count == 0 else math.ceil(count / size)
    return ResultPage(results=list(results[start:start + size]), count=count, last_page=last_page)
