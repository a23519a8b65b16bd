"""
Selection Module
Provides event scoring, deduplication, quota balancing and timeline sampling
"""

from .scorer import calculate_severity, get_severity_info, recalculate_severities
from .dedup import deduplicate, deduplicate_by_title_similarity, is_same_subject
from .quota import allocate_events, QuotaConfig, summarize_distribution
from .timeline import build_topic_timeline, build_smart_timeline

__all__ = [
    'calculate_severity',
    'get_severity_info',
    'recalculate_severities',
    'deduplicate',
    'deduplicate_by_title_similarity',
    'is_same_subject',
    'allocate_events',
    'QuotaConfig',
    'summarize_distribution',
    'build_topic_timeline',
    'build_smart_timeline'
]
