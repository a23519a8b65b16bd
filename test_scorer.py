"""
Severity scorer tests
"""
from curation.event.model import Event, MS_PER_HOUR
from curation.selection.scorer import (
    calculate_severity,
    get_severity_info,
    recalculate_severities,
)

NOW = 1_700_000_000_000


def make_event(category, title, hours_ago=30, description=None, **metadata):
    return Event(
        id=f"{category}-{hours_ago}",
        title=title,
        category=category,
        severity=5,
        latitude=0.0,
        longitude=0.0,
        timestamp=NOW - int(hours_ago * MS_PER_HOUR),
        description=description,
        metadata=metadata,
    )


def test_base_severity_only():
    event = make_event("technology", "Chipmaker unveils new laptop line", hours_ago=72)
    assert calculate_severity(event, NOW) == 3.0


def test_recency_adjustments():
    assert calculate_severity(make_event("politics", "Parliament debates budget", hours_ago=2), NOW) == 7.0
    assert calculate_severity(make_event("politics", "Parliament debates budget", hours_ago=12), NOW) == 6.0
    assert calculate_severity(make_event("politics", "Parliament debates budget", hours_ago=200), NOW) == 4.0


def test_clamped_to_ten():
    event = make_event(
        "terrorism",
        "Catastrophic attack killed hundreds",
        hours_ago=1,
        is_ongoing=True,
        article_count=12,
    )
    assert calculate_severity(event, NOW) == 10.0


def test_low_scores_stay_non_negative():
    event = make_event("sports", "Club signs goalkeeper", hours_ago=400, source_tier=3)
    # 2 - 1 - 0.5
    assert calculate_severity(event, NOW) == 0.5


def test_source_ongoing_and_coverage():
    event = make_event(
        "politics",
        "Parliament debates budget",
        source_tier=1,
        is_ongoing=True,
        article_count=5,
    )
    assert calculate_severity(event, NOW) == 7.0


def test_keyword_cues():
    important = make_event("politics", "Serious doubts over budget plan")
    assert calculate_severity(important, NOW) == 6.0

    critical_wins = make_event("politics", "Major and serious doubts over budget plan")
    assert calculate_severity(critical_wins, NOW) == 7.0

    multi_region = make_event("politics", "Global summit", description="Leaders from many nations attend")
    assert calculate_severity(multi_region, NOW) == 6.0

    single_region_word = make_event("politics", "Global summit opens")
    assert calculate_severity(single_region_word, NOW) == 5.0


def test_deterministic():
    event = make_event("flood", "Severe flooding displaces thousands", hours_ago=3)
    scores = {calculate_severity(event, NOW) for _ in range(5)}
    assert len(scores) == 1
    assert 0 <= scores.pop() <= 10


def test_severity_info_bands():
    assert get_severity_info(9.1)["level"] == "critical"
    assert get_severity_info(6)["label"] == "High"
    assert get_severity_info(4.0)["level"] == "medium"
    assert get_severity_info(1.5)["level"] == "low"


def test_recalculate_severities_returns_copies():
    event = make_event("technology", "Chipmaker unveils new laptop line", hours_ago=72)
    rescored = recalculate_severities([event], NOW)
    assert rescored[0].severity == 3.0
    assert event.severity == 5
    assert rescored[0].id == event.id
