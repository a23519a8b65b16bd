"""
Country normalization tests
"""
from curation.event.country import (
    country_key,
    extract_countries,
    normalize_country,
)
from curation.event.model import Event

NOW = 1_700_000_000_000


def make_event(event_id, country):
    return Event(
        id=event_id,
        title=f"story {event_id}",
        category="politics",
        severity=5,
        latitude=0.0,
        longitude=0.0,
        timestamp=NOW,
        metadata={"country": country} if country else {},
    )


def test_aliases_collapse_to_one_country():
    assert normalize_country("USA")["name"] == "United States"
    assert normalize_country("us")["code"] == "US"
    assert country_key("America") == "united states"
    assert country_key("UK") == country_key("Britain") == "united kingdom"


def test_unknown_country_is_capitalized():
    info = normalize_country("bosnia and herzegovina")
    assert info["name"] == "Bosnia and Herzegovina"
    assert info["code"] == "BA"

    assert normalize_country("kenya")["code"] == "KE"


def test_country_key_missing():
    assert country_key(None) is None
    assert country_key("   ") is None


def test_extract_countries_sorted_by_count():
    events = [
        make_event("1", "USA"),
        make_event("2", "United States"),
        make_event("3", "France"),
        make_event("4", "Chile"),
        make_event("5", "chile"),
        make_event("6", "us"),
        make_event("7", None),
    ]
    options = extract_countries(events)

    assert [o.label for o in options] == ["United States", "Chile", "France"]
    assert [o.count for o in options] == [3, 2, 1]
    assert options[0].code == "US"


def test_matching_is_whole_word():
    united_states = extract_countries([make_event("1", "USA")])[0]

    assert united_states.matches("us")
    assert united_states.matches("America")
    assert united_states.matches("Washington")
    assert not united_states.matches("Russia")
    assert not united_states.matches("Austria")
    assert not united_states.matches("United Kingdom")
    assert not united_states.matches(None)


def test_landmark_keywords():
    russia = extract_countries([make_event("1", "Russia")])[0]
    assert "kremlin" in russia.keywords
    assert russia.matches("Moscow")
    assert russia.matches("Russian Federation")
