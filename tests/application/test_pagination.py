import pytest

from tanuki.application.services.pagination import clamp_limit, paginate
from tanuki.config import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


def test_empty_results_still_have_one_page():
    page = paginate([])
    assert page.results == []
    assert page.count == 0
    assert page.last_page == 1


def test_last_page_rounds_up():
    page = paginate(list(range(25)), offset=20, limit=10)
    assert page.results == [20, 21, 22, 23, 24]
    assert page.count == 25
    assert page.last_page == 3


def test_exact_multiple():
    assert paginate(list(range(20)), limit=10).last_page == 2


def test_default_limit():
    page = paginate(list(range(40)))
    assert len(page.results) == DEFAULT_PAGE_LIMIT


@pytest.mark.parametrize(
    "limit, expected",
    [(None, DEFAULT_PAGE_LIMIT), (0, 1), (-5, 1), (10, 10), (10_000, MAX_PAGE_LIMIT)],
)
def test_clamp_limit(limit, expected):
    assert clamp_limit(limit) == expected


def test_offset_is_clamped():
    items = list(range(5))
    assert paginate(items, offset=-3, limit=2).results == [0, 1]
    assert paginate(items, offset=99, limit=2).results == []
