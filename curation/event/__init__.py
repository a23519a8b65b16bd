"""
Event Module
Normalized event records, timeline projections and country normalization
"""

from .model import Event, TimelineEvent, InvalidEventError, CATEGORIES
from .country import CountryOption, extract_countries, country_key

__all__ = [
    'Event',
    'TimelineEvent',
    'InvalidEventError',
    'CATEGORIES',
    'CountryOption',
    'extract_countries',
    'country_key'
]
