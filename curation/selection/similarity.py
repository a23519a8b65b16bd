"""
Similarity Module
String and geographic similarity primitives shared by deduplication and balancing
"""

import math
import re
from typing import List, Set

from rapidfuzz.distance import Levenshtein

EARTH_RADIUS_MILES = 3959.0

STOP_WORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by', 'from', 'as', 'is', 'was', 'are', 'were', 'been',
    'be', 'have', 'has', 'had', 'do', 'does', 'did', 'will', 'would',
    'could', 'should', 'may', 'might', 'must', 'can', 'this', 'that',
    'these', 'those', 'i', 'you', 'he', 'she', 'it', 'we', 'they',
    'after', 'over', 'into', 'says', 'said', 'amid', 'about', 'than',
}

MIN_KEYWORD_LENGTH = 4


def normalize_text(text: str) -> str:
    return (text or "").lower().strip()


def edit_similarity(text1: str, text2: str) -> float:
    """
    Levenshtein similarity of two strings after lowercasing and trimming

    Returns:
        1 - distance / max(len), from 0.0 to 1.0 (1.0 when both are empty)
    """
    norm1 = normalize_text(text1)
    norm2 = normalize_text(text2)

    if norm1 == norm2:
        return 1.0

    max_len = max(len(norm1), len(norm2))
    distance = Levenshtein.distance(norm1, norm2)
    return 1.0 - distance / max_len


def tokenize(text: str) -> List[str]:
    """Lowercase words with punctuation stripped, stop words and short words dropped"""
    words = re.sub(r"[^\w\s]", " ", normalize_text(text)).split()
    return [w for w in words if len(w) >= MIN_KEYWORD_LENGTH and w not in STOP_WORDS]


def keyword_set(text: str) -> Set[str]:
    return set(tokenize(text))


def extract_keywords(text: str, limit: int = 5) -> List[str]:
    """First ``limit`` distinct keywords of a title, in reading order"""
    keywords = []
    for word in tokenize(text):
        if word not in keywords:
            keywords.append(word)
        if len(keywords) >= limit:
            break
    return keywords


def keyword_overlap(text1: str, text2: str) -> float:
    """Jaccard similarity of the two keyword sets (0.0 when both are empty)"""
    words1 = keyword_set(text1)
    words2 = keyword_set(text2)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def great_circle_distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Haversine distance in miles"""
    d_lat = math.radians(lat2 - lat1)
    d_lng = math.radians(lng2 - lng1)

    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Clamp float drift before sqrt(1 - a)
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_MILES * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
