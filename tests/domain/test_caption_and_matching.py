from datetime import datetime, timezone

from tanuki.domain.models import Location, SearchResult
from tanuki.domain.services import normalize_values, parse_caption, select_complete_matches


class TestParseCaption:
    def test_tags_and_location(self):
        parts = parse_caption("Sunset at the beach #sunset #Beach @Malibu")
        assert parts.tags == ["sunset", "Beach"]
        assert parts.location == Location("Malibu")

    def test_quoted_location(self):
        parts = parse_caption('dinner @"Home; Paris, France" with friends #food')
        assert parts.location == Location("Home", "Paris", "France")
        assert parts.tags == ["food"]

    def test_tags_stop_at_delimiters(self):
        assert parse_caption("#one,#two.#three;(#four)").tags == ["one", "two", "three", "four"]

    def test_last_location_wins(self):
        assert parse_caption("@first then @second").location == Location("second")

    def test_plain_text_has_nothing(self):
        parts = parse_caption("just words # and @ alone")
        assert parts.tags == []
        assert parts.location is None

    def test_unterminated_quote_runs_to_end(self):
        assert parse_caption('@"Paris, France').location == Location(None, "Paris", "France")


def _result(asset_id):
    return SearchResult(asset_id, f"{asset_id}.jpg", "image/jpeg", None, datetime(2024, 1, 1, tzinfo=timezone.utc))


class TestSelectCompleteMatches:
    def test_normalize_values(self):
        assert normalize_values(["Paris", "paris", "", "France"]) == ["france", "paris"]

    def test_keeps_assets_matching_every_value(self):
        a, b = _result("a"), _result("b")
        rows = [("b", "cat", b), ("a", "cat", a), ("a", "dog", a)]
        assert select_complete_matches(rows, ["Cat", "DOG"]) == [a]

    def test_value_matching_two_fields_counts_once(self):
        a = _result("a")
        rows = [("a", "georgia", a), ("a", "georgia", a)]
        assert select_complete_matches(rows, ["georgia"]) == [a]
        assert select_complete_matches(rows, ["georgia", "atlanta"]) == []

    def test_results_sorted_by_id_and_unique(self):
        a, b = _result("a"), _result("b")
        rows = [("b", "x", b), ("a", "x", a), ("b", "x", b)]
        assert select_complete_matches(rows, ["x"]) == [a, b]

    def test_empty_request_matches_nothing(self):
        assert select_complete_matches([("a", "x", _result("a"))], []) == []
