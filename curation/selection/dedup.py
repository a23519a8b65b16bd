"""
Deduplication Module
Collapses near-duplicate events by title similarity, keyword overlap and time/place co-occurrence
"""

from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

from loguru import logger

from curation.event.model import Event, MS_PER_DAY, MS_PER_HOUR, now_ms
from .similarity import (
    edit_similarity,
    extract_keywords,
    great_circle_distance_miles,
    keyword_overlap,
)

SUBJECT_SIMILARITY_THRESHOLD = 0.7
STRICT_SIMILARITY_THRESHOLD = 0.85
MIN_SHARED_KEYWORDS = 2
PROXIMITY_WINDOW_MS = 24 * MS_PER_HOUR
PROXIMITY_MILES = 50.0

EDIT_WEIGHT = 0.6
KEYWORD_WEIGHT = 0.4


def _dedup_settings(config: Dict[str, Any] = None) -> Dict[str, Any]:
    if not config:
        return {}
    return config.get("configuration", {}).get("deduplication", {})


def subject_score(event: Event, now: int) -> float:
    """Ordering score for the greedy scan: severity + days since published"""
    return (event.severity or 0) + (now - event.timestamp) / MS_PER_DAY


def same_subject_reason(
    event1: Event,
    event2: Event,
    threshold: float = SUBJECT_SIMILARITY_THRESHOLD
) -> Optional[str]:
    """
    Explain why two events describe the same story

    Returns:
        "title", "keywords" or "proximity", or None when they are distinct
    """
    if edit_similarity(event1.title, event2.title) > threshold:
        return "title"

    keywords1 = set(extract_keywords(event1.title))
    keywords2 = set(extract_keywords(event2.title))
    if len(keywords1 & keywords2) >= MIN_SHARED_KEYWORDS:
        return "keywords"

    if abs(event1.timestamp - event2.timestamp) < PROXIMITY_WINDOW_MS:
        distance = great_circle_distance_miles(
            event1.latitude, event1.longitude,
            event2.latitude, event2.longitude
        )
        if distance < PROXIMITY_MILES:
            return "proximity"

    return None


def is_same_subject(event1: Event, event2: Event, threshold: float = SUBJECT_SIMILARITY_THRESHOLD) -> bool:
    return same_subject_reason(event1, event2, threshold) is not None


def deduplicate(
    events: List[Event],
    config: Dict[str, Any] = None,
    now: int = None,
    score: Callable[[Event, int], float] = None,
    same_subject: Callable[[Event, Event], bool] = None,
    strategy: str = None
) -> List[Event]:
    """
    Remove events that cover a story already represented

    Strategy "greedy" (default):
    1. Sort by score DESC (severity + days since published)
    2. Accept an event unless it is the same subject as any accepted event
    Chains of pairwise-similar titles may collapse into one representative.

    Strategy "cluster": exact connected components, see cluster_deduplicate.

    Args:
        events: Events to deduplicate
        config: Configuration dict (configuration.deduplication)
        now: Reference time in epoch milliseconds
        score: Ordering key, higher is kept first
        same_subject: Pairwise duplicate predicate

    Returns:
        Deduplicated events ordered by score DESC
    """
    if not events:
        return []

    settings = _dedup_settings(config)
    strategy = strategy or settings.get("strategy", "greedy")
    if now is None:
        now = now_ms()
    if score is None:
        score = subject_score

    threshold = settings.get("subject_threshold", SUBJECT_SIMILARITY_THRESHOLD)
    if same_subject is None:
        def reason_of(a, b):
            return same_subject_reason(a, b, threshold)

        def same_subject(a, b):
            return reason_of(a, b) is not None
    else:
        def reason_of(a, b):
            return "predicate" if same_subject(a, b) else None

    if strategy == "cluster":
        return cluster_deduplicate(events, now=now, score=score, same_subject=same_subject)
    if strategy != "greedy":
        raise ValueError(f"Unknown deduplication strategy: {strategy}")

    ordered = sorted(events, key=lambda e: score(e, now), reverse=True)

    unique_events: List[Event] = []
    seen_ids = set()
    duplicates_removed = 0

    for event in ordered:
        if event.id in seen_ids:
            duplicates_removed += 1
            logger.debug(f"Duplicate (id): {event.title}")
            continue

        duplicate_of = None
        reason = None
        for existing in unique_events:
            reason = reason_of(event, existing)
            if reason:
                duplicate_of = existing
                break

        if duplicate_of is not None:
            duplicates_removed += 1
            logger.debug(f"Duplicate ({reason}, kept {duplicate_of.id}): {event.title}")
            continue

        unique_events.append(event)
        seen_ids.add(event.id)

    logger.info(
        f"Deduplication: {len(events)} -> {len(unique_events)} events "
        f"({duplicates_removed} duplicates)"
    )

    return unique_events


def cluster_deduplicate(
    events: List[Event],
    now: int = None,
    score: Callable[[Event, int], float] = None,
    same_subject: Callable[[Event, Event], bool] = None
) -> List[Event]:
    """
    Exact clustering: union-find over the same-subject graph

    Every connected component keeps its best-scored event, so the result
    does not depend on scan order.
    """
    if not events:
        return []
    if now is None:
        now = now_ms()
    if score is None:
        score = subject_score
    if same_subject is None:
        same_subject = is_same_subject

    # One node per distinct id
    nodes: List[Event] = []
    index_by_id: Dict[str, int] = {}
    for event in events:
        if event.id not in index_by_id:
            index_by_id[event.id] = len(nodes)
            nodes.append(event)

    parent = list(range(len(nodes)))

    def find(i):
        while parent[i] != i:
            parent[i] = parent[parent[i]]
            i = parent[i]
        return i

    for i in range(len(nodes)):
        for j in range(i + 1, len(nodes)):
            if find(i) != find(j) and same_subject(nodes[i], nodes[j]):
                parent[find(j)] = find(i)

    best: Dict[int, Event] = {}
    for i, event in enumerate(nodes):
        root = find(i)
        if root not in best or score(event, now) > score(best[root], now):
            best[root] = event

    unique_events = sorted(best.values(), key=lambda e: score(e, now), reverse=True)
    logger.info(
        f"Cluster deduplication: {len(events)} -> {len(unique_events)} events "
        f"({len(nodes) - len(unique_events)} merged)"
    )
    return unique_events


def title_similarity(title1: str, title2: str) -> float:
    """Weighted title similarity: 0.6 * edit similarity + 0.4 * keyword Jaccard"""
    if (title1 or "").lower().strip() == (title2 or "").lower().strip():
        return 1.0
    return EDIT_WEIGHT * edit_similarity(title1, title2) + KEYWORD_WEIGHT * keyword_overlap(title1, title2)


def url_path_key(url: Optional[str]) -> Optional[str]:
    """Lowercased URL path used as an exact-match duplicate key"""
    if not url:
        return None
    try:
        path = urlparse(url).path
    except ValueError as e:
        logger.warning(f"Failed to parse URL '{url}': {e}")
        return None
    return path.lower() or None


def _strict_deduplicate(
    items: List[Any],
    threshold: float,
    prefer: Callable[[Any, Any], bool],
    label: str
) -> List[Any]:
    ordered = sorted(
        items,
        key=lambda x: (x.timestamp, getattr(x, "severity", 0) or 0),
        reverse=True
    )

    unique_items: List[Any] = []
    seen_urls = set()
    title_duplicates = 0
    url_duplicates = 0

    for item in ordered:
        is_duplicate = False

        for i, existing in enumerate(unique_items):
            similarity = title_similarity(item.title, existing.title)
            if similarity >= threshold:
                is_duplicate = True
                title_duplicates += 1
                if prefer(item, existing):
                    unique_items[i] = item
                    logger.debug(f"Title duplicate (replaced, sim={similarity:.2f}): {item.title}")
                else:
                    logger.debug(f"Title duplicate (kept existing, sim={similarity:.2f}): {item.title}")
                break

        if not is_duplicate:
            url_key = url_path_key(getattr(item, "url", None))
            if url_key:
                if url_key in seen_urls:
                    is_duplicate = True
                    url_duplicates += 1
                    logger.debug(f"URL duplicate: {item.title}")
                else:
                    seen_urls.add(url_key)

        if not is_duplicate:
            unique_items.append(item)

    logger.info(
        f"{label}: {len(items)} -> {len(unique_items)} "
        f"({title_duplicates} title, {url_duplicates} URL duplicates)"
    )
    return unique_items


def deduplicate_by_title_similarity(
    items: List[Any],
    threshold: float = STRICT_SIMILARITY_THRESHOLD
) -> List[Any]:
    """
    Strict deduplication for article and timeline lists

    Strategy:
    1. Sort by timestamp DESC, then severity DESC
    2. Title duplicate when 0.6*edit + 0.4*keyword similarity >= threshold;
       the incoming item replaces the kept one if it is more recent, or
       equally recent with higher severity
    3. Otherwise an exact URL-path match is also a duplicate

    Items need ``title``, ``timestamp``, ``severity`` and optionally ``url``.

    Returns:
        Deduplicated items, most recent first
    """
    if not items:
        return []

    def prefer(item, existing):
        if item.timestamp != existing.timestamp:
            return item.timestamp > existing.timestamp
        return (item.severity or 0) > (existing.severity or 0)

    return _strict_deduplicate(items, threshold, prefer, "Title deduplication")


def deduplicate_timeline_events(
    items: List[Any],
    threshold: float = STRICT_SIMILARITY_THRESHOLD
) -> List[Any]:
    """Strict deduplication for timeline entries: on a title hit the more recent entry wins"""
    if not items:
        return []
    return _strict_deduplicate(
        items,
        threshold,
        lambda item, existing: item.timestamp > existing.timestamp,
        "Timeline deduplication"
    )
