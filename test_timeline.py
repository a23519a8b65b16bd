"""
Timeline sampler tests
"""
import hashlib

from curation.event.model import Event, MS_PER_DAY, TimelineEvent
from curation.selection.dedup import title_similarity
from curation.selection.timeline import (
    MAX_TIMELINE_EVENTS,
    build_smart_timeline,
    build_topic_timeline,
)

NOW = 1_700_000_000_000


def unique_title(i):
    # Hex digests never collide under the 0.85 title rule
    return hashlib.md5(str(i).encode()).hexdigest()


def make_event(event_id, title, days_ago, category="politics", description=None, **metadata):
    return Event(
        id=event_id,
        title=title,
        category=category,
        severity=5,
        latitude=10.0,
        longitude=10.0,
        timestamp=NOW - int(days_ago * MS_PER_DAY),
        description=description,
        metadata=metadata,
    )


def topic_events(count):
    return [make_event(f"e{i}", unique_title(i), days_ago=count - i) for i in range(count)]


def assert_chronological(timeline):
    timestamps = [item.timestamp for item in timeline]
    assert timestamps == sorted(timestamps)


def test_empty_and_single():
    assert build_topic_timeline([], now=NOW) == []

    single = build_topic_timeline([make_event("only", "Ceasefire announced", 1)], now=NOW)
    assert len(single) == 1
    assert isinstance(single[0], TimelineEvent)
    assert single[0].id == "only"


def test_large_topic_is_bounded_and_ordered():
    events = topic_events(100)
    timeline = build_topic_timeline(list(reversed(events)), now=NOW)

    assert len(timeline) == MAX_TIMELINE_EVENTS
    assert_chronological(timeline)
    ids = [item.id for item in timeline]
    assert "e0" in ids
    assert "e99" in ids
    assert len(set(ids)) == len(ids)


def test_spread_covers_whole_range():
    events = topic_events(200)
    timeline = build_topic_timeline(events, now=NOW)
    span = timeline[-1].timestamp - timeline[0].timestamp
    assert span == events[-1].timestamp - events[0].timestamp
    # Sampled milestones land in both halves of the history
    midpoint = events[100].timestamp
    assert any(item.timestamp < midpoint for item in timeline[1:-1])
    assert any(item.timestamp > midpoint for item in timeline[1:-1])


def test_small_topic_returns_everything():
    events = topic_events(15)
    timeline = build_topic_timeline(events[::-1], now=NOW)
    assert [item.id for item in timeline] == [e.id for e in events]


def test_most_severe_interior_event_kept():
    events = topic_events(100)
    events[50] = make_event(
        "critical",
        "Catastrophic blast killed thousands",
        days_ago=50,
        category="terrorism",
    )
    timeline = build_topic_timeline(events, now=NOW)
    assert "critical" in [item.id for item in timeline]


def test_near_duplicate_titles_collapse():
    events = [
        make_event("a", "Ceasefire talks resume in Cairo", days_ago=3),
        make_event("b", "Ceasefire talks resume in Cairo", days_ago=2),
        make_event("c", "Ceasefire talks resume in Cairo.", days_ago=1),
        make_event("d", "Aid convoy reaches northern town", days_ago=0.5),
    ]
    timeline = build_topic_timeline(events, now=NOW)
    assert [item.id for item in timeline] == ["c", "d"]

    # The origin survives through a near-duplicate representative
    assert title_similarity(timeline[0].title, events[0].title) >= 0.85


def test_timeline_projection_fields():
    event = make_event(
        "x", "Bridge reopens after repairs", days_ago=1,
        url="https://example.com/bridge", location_name="Lisbon",
    )
    item = build_topic_timeline([event], now=NOW)[0]
    assert item.url == "https://example.com/bridge"
    assert item.location == "Lisbon"
    assert item.source == "Unknown"
    assert item.to_dict()["location"] == "Lisbon"


def test_config_caps_length():
    config = {"configuration": {"timeline": {"max_events": 10}}}
    timeline = build_topic_timeline(topic_events(60), config, now=NOW)
    assert len(timeline) == 10
    assert timeline[0].id == "e0"
    assert timeline[-1].id == "e59"


def test_smart_timeline_keeps_origin_and_recent():
    events = [
        make_event(f"old{i}", unique_title(i), days_ago=300 - i) for i in range(80)
    ] + [
        make_event(f"new{i}", unique_title(1000 + i), days_ago=i * 0.5 + 0.1) for i in range(5)
    ]
    timeline = build_smart_timeline(events, now=NOW)

    assert len(timeline) <= MAX_TIMELINE_EVENTS
    assert_chronological(timeline)
    ids = [item.id for item in timeline]
    assert "old0" in ids
    for i in range(5):
        assert f"new{i}" in ids


def test_smart_timeline_empty():
    assert build_smart_timeline([], now=NOW) == []
