"""
Timeline Module
Turns one topic's events into a bounded, chronological, non-redundant list of milestones
"""

from typing import Dict, List

from loguru import logger

from curation.event.model import Event, MS_PER_DAY, TimelineEvent, now_ms
from .dedup import STRICT_SIMILARITY_THRESHOLD, deduplicate_timeline_events
from .scorer import calculate_severity

MAX_TIMELINE_EVENTS = 40
RECENT_WINDOW_DAYS = 7
MAX_RECENT_EVENTS = 10
MAX_SEVERE_EVENTS = 15


def _timeline_settings(config: Dict = None) -> Dict:
    if not config:
        return {}
    return config.get("configuration", {}).get("timeline", {})


def _stride_sample(events: List[Event], budget: int) -> List[Event]:
    """Fixed-stride picks spread across the whole (chronological) list"""
    if budget <= 0 or not events:
        return []
    step = max(1, len(events) // budget)
    return events[::step][:budget]


def _finalize(
    selected: List[Event],
    now: int,
    max_events: int,
    threshold: float
) -> List[TimelineEvent]:
    unique = list({event.id: event for event in selected}.values())
    unique.sort(key=lambda e: e.timestamp)
    unique = unique[:max_events]

    timeline = [TimelineEvent.from_event(e, calculate_severity(e, now)) for e in unique]
    timeline = deduplicate_timeline_events(timeline, threshold)
    timeline.sort(key=lambda t: t.timestamp)
    return timeline


def build_topic_timeline(
    events: List[Event],
    config: Dict = None,
    now: int = None
) -> List[TimelineEvent]:
    """
    Build an origin-to-current timeline for one topic

    Strategy:
    1. Always keep the earliest (origin) and latest (current) events
    2. Top half of the remaining budget: interior events by severity
    3. Rest of the budget: fixed-stride sample across the interior
    4. Merge by id, sort chronologically, cap, strict title dedup

    Args:
        events: Events for one topic, any order
        config: Configuration dict (configuration.timeline)
        now: Reference time in epoch milliseconds

    Returns:
        At most 40 TimelineEvents ordered by timestamp
    """
    if not events:
        return []

    settings = _timeline_settings(config)
    max_events = settings.get("max_events", MAX_TIMELINE_EVENTS)
    threshold = settings.get("dedup_threshold", STRICT_SIMILARITY_THRESHOLD)
    if now is None:
        now = now_ms()

    ordered = sorted(events, key=lambda e: e.timestamp)
    target_count = min(max_events, len(ordered))

    endpoints = [ordered[0]]
    if len(ordered) > 1:
        endpoints.append(ordered[-1])

    interior = ordered[1:-1]
    remaining = max(0, target_count - len(endpoints))

    by_severity = sorted(interior, key=lambda e: calculate_severity(e, now), reverse=True)
    severe = by_severity[:remaining // 2]

    severe_ids = {e.id for e in severe}
    spread = _stride_sample(
        [e for e in interior if e.id not in severe_ids],
        remaining - len(severe)
    )

    timeline = _finalize(endpoints + severe + spread, now, max_events, threshold)
    logger.info(f"Timeline: {len(events)} events -> {len(timeline)} milestones")
    return timeline


def build_smart_timeline(
    events: List[Event],
    config: Dict = None,
    now: int = None
) -> List[TimelineEvent]:
    """
    Build a timeline weighted toward the last week

    Keeps the origin, up to 10 events from the last 7 days, the 15 most
    severe of the rest, then evenly spaced events up to the cap.
    """
    if not events:
        return []

    settings = _timeline_settings(config)
    max_events = settings.get("max_events", MAX_TIMELINE_EVENTS)
    threshold = settings.get("dedup_threshold", STRICT_SIMILARITY_THRESHOLD)
    if now is None:
        now = now_ms()

    ordered = sorted(events, key=lambda e: e.timestamp)
    selected = [ordered[0]]
    selected_ids = {ordered[0].id}

    window_start = now - RECENT_WINDOW_DAYS * MS_PER_DAY
    recent = [e for e in ordered if e.timestamp >= window_start and e.id not in selected_ids]
    for event in recent[:MAX_RECENT_EVENTS]:
        selected.append(event)
        selected_ids.add(event.id)

    rest = [e for e in ordered if e.id not in selected_ids]
    rest.sort(key=lambda e: calculate_severity(e, now), reverse=True)
    for event in rest[:MAX_SEVERE_EVENTS]:
        selected.append(event)
        selected_ids.add(event.id)

    available = [e for e in ordered if e.id not in selected_ids]
    selected.extend(_stride_sample(available, max_events - len(selected)))

    timeline = _finalize(selected, now, max_events, threshold)
    logger.info(f"Smart timeline: {len(events)} events -> {len(timeline)} milestones")
    return timeline
