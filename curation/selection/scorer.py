"""
Severity Scoring Module
Additive 0-10 importance heuristic: category base + recency + source tier + keyword cues + coverage
"""

import re
from typing import Dict, List, Optional

from loguru import logger

from curation.event.model import Event, now_ms

CATEGORY_BASE_SEVERITY: Dict[str, float] = {
    'breaking': 7,
    'armed-conflict': 8,
    'terrorism': 9,
    'civil-unrest': 7,
    'crime': 6,
    'earthquake': 6,
    'natural-disaster': 7,
    'volcano': 8,
    'tsunami': 9,
    'wildfire': 6,
    'storm': 5,
    'flood': 5,
    'politics': 5,
    'business': 4,
    'technology': 3,
    'science': 4,
    'health': 5,
    'sports': 2,
    'entertainment': 2,
    'other': 3,
}
UNKNOWN_CATEGORY_SEVERITY = 5.0

CRITICAL_PATTERN = re.compile(
    r"\b(critical|urgent|breaking|major|catastrophic|devastating|massive|widespread)\b"
)
IMPORTANT_PATTERN = re.compile(r"\b(important|significant|serious|severe|extensive)\b")
CASUALTY_PATTERN = re.compile(
    r"\b(killed|deaths|casualties|fatalities|injured|hundreds|thousands|millions)\b"
)
MULTI_REGION_PATTERN = re.compile(
    r"\b(country|countries|nation|nations|region|regions|global|international|worldwide)\b"
)

SEVERITY_BANDS = [
    (8, {'label': 'Critical', 'color': '#ef4444', 'level': 'critical'}),
    (6, {'label': 'High', 'color': '#f59e0b', 'level': 'high'}),
    (4, {'label': 'Medium', 'color': '#3b82f6', 'level': 'medium'}),
]
LOW_SEVERITY = {'label': 'Low', 'color': '#6b7280', 'level': 'low'}


def calculate_recency_adjustment(hours_old: float) -> float:
    if hours_old < 6:
        return 2.0
    if hours_old < 24:
        return 1.0
    if hours_old > 7 * 24:
        return -1.0
    return 0.0


def calculate_source_adjustment(source_tier: Optional[int]) -> float:
    if source_tier == 1:
        return 1.0
    if source_tier == 3:
        return -0.5
    return 0.0


def calculate_keyword_adjustment(text: str) -> float:
    """Keyword cues from title + description (lowercased)"""
    adjustment = 0.0

    if CRITICAL_PATTERN.search(text):
        adjustment += 2.0
    elif IMPORTANT_PATTERN.search(text):
        adjustment += 1.0

    if CASUALTY_PATTERN.search(text):
        adjustment += 1.0

    # Wide geographic impact needs at least two multi-region words
    if len(MULTI_REGION_PATTERN.findall(text)) >= 2:
        adjustment += 1.0

    return adjustment


def calculate_coverage_adjustment(article_count: int) -> float:
    if article_count >= 10:
        return 1.0
    if article_count >= 5:
        return 0.5
    return 0.0


def calculate_severity(event: Event, now: int = None) -> float:
    """
    Calculate the 0-10 severity of an event

    Args:
        event: Event to score
        now: Reference time in epoch milliseconds (default: current time)

    Returns:
        Score rounded to one decimal and clamped to [0, 10]
    """
    if now is None:
        now = now_ms()

    base = CATEGORY_BASE_SEVERITY.get(event.category, UNKNOWN_CATEGORY_SEVERITY)
    recency = calculate_recency_adjustment(event.age_hours(now))
    source = calculate_source_adjustment(event.source_tier)
    text = f"{event.title} {event.description or ''}".lower()
    keywords = calculate_keyword_adjustment(text)
    ongoing = 0.5 if event.is_ongoing else 0.0
    coverage = calculate_coverage_adjustment(event.article_count)

    total = base + recency + source + keywords + ongoing + coverage
    score = min(10.0, max(0.0, round(total, 1)))

    logger.debug(
        f"Severity {event.id}: base={base}, recency={recency}, source={source}, "
        f"keywords={keywords}, ongoing={ongoing}, coverage={coverage} -> {score}"
    )

    return score


def get_severity_info(severity: float) -> Dict[str, str]:
    """Label, display color and level for a severity score"""
    for threshold, info in SEVERITY_BANDS:
        if severity >= threshold:
            return dict(info)
    return dict(LOW_SEVERITY)


def recalculate_severities(events: List[Event], now: int = None) -> List[Event]:
    """Return copies of the events with severity replaced by the computed score"""
    if now is None:
        now = now_ms()
    return [event.with_severity(calculate_severity(event, now)) for event in events]
