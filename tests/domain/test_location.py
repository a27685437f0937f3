import pytest

from tanuki.domain.models import Location, LocationInput, merge_location


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Home", Location("Home")),
        ("Home; Paris", Location("Home", "Paris")),
        ("Home; Paris, France", Location("Home", "Paris", "France")),
        ("Paris, France", Location(None, "Paris", "France")),
        ("  Home ;  Paris ,  France ", Location("Home", "Paris", "France")),
        ("a, b, c", Location("a, b, c")),
        ("a; b; c", Location("a; b; c")),
        ("", Location()),
    ],
)
def test_parse_shapes(text, expected):
    assert Location.parse(text) == expected


@pytest.mark.parametrize(
    "text",
    ["Home", "Home; Paris", "Home; Paris, France", "Paris, France", "Home; , France", "; Paris", ", France"],
)
def test_str_parses_back_to_same_location(text):
    location = Location.parse(text)
    assert str(location) == text
    assert Location.parse(str(location)) == location


def test_blank_parts_become_none():
    location = Location("", "Paris", "")
    assert location.label is None
    assert location.region is None
    assert location.parts() == ["Paris"]


def test_from_parts_returns_none_when_empty():
    assert Location.from_parts("", None, "") is None
    assert Location.from_parts(None, "Paris", None) == Location(city="Paris")


class TestMergeLocation:
    def test_none_input_keeps_current(self):
        current = Location("Home", "Paris")
        assert merge_location(current, None) is current

    def test_fields_replace_and_keep(self):
        merged = merge_location(Location("Home", "Paris", "France"), LocationInput(city="Lyon"))
        assert merged == Location("Home", "Lyon", "France")

    def test_empty_string_clears_field(self):
        merged = merge_location(Location("Home", "Paris"), LocationInput(label=""))
        assert merged == Location(None, "Paris")

    def test_clearing_everything_drops_location(self):
        merged = merge_location(Location("Home"), LocationInput(label="", city="", region=""))
        assert merged is None

    def test_sets_location_on_asset_without_one(self):
        assert merge_location(None, LocationInput(region=" Oregon ")) == Location(region="Oregon")

    def test_current_is_not_mutated(self):
        current = Location("Home", "Paris")
        merge_location(current, LocationInput(city="Lyon"))
        assert current.city == "Paris"
