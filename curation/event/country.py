"""
Country Normalization
Maps free-form country strings to a canonical name, ISO code and matching keywords
"""

import re
from collections import Counter
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from loguru import logger

from .model import Event

# Variations that should collapse onto one canonical country
COUNTRY_ALIASES: Dict[str, Dict] = {
    "united states": {"name": "United States", "code": "US", "aliases": ["usa", "us", "america", "u.s.", "u.s.a"]},
    "usa": {"name": "United States", "code": "US", "aliases": ["united states", "america", "u.s.", "u.s.a"]},
    "us": {"name": "United States", "code": "US", "aliases": ["usa", "united states", "america"]},
    "america": {"name": "United States", "code": "US", "aliases": ["usa", "united states", "u.s."]},
    "united kingdom": {"name": "United Kingdom", "code": "GB", "aliases": ["uk", "britain", "great britain", "england"]},
    "uk": {"name": "United Kingdom", "code": "GB", "aliases": ["united kingdom", "britain", "great britain"]},
    "britain": {"name": "United Kingdom", "code": "GB", "aliases": ["uk", "united kingdom", "great britain"]},
    "united arab emirates": {"name": "United Arab Emirates", "code": "AE", "aliases": ["uae", "emirates"]},
    "uae": {"name": "United Arab Emirates", "code": "AE", "aliases": ["united arab emirates", "emirates"]},
    "russian federation": {"name": "Russia", "code": "RU", "aliases": ["russia", "russian"]},
    "russia": {"name": "Russia", "code": "RU", "aliases": ["russian federation", "russian"]},
    "people's republic of china": {"name": "China", "code": "CN", "aliases": ["china", "prc", "chinese"]},
    "china": {"name": "China", "code": "CN", "aliases": ["people's republic of china", "prc", "chinese"]},
    "south korea": {"name": "South Korea", "code": "KR", "aliases": ["korea", "republic of korea", "rok"]},
    "north korea": {"name": "North Korea", "code": "KP", "aliases": ["dprk", "democratic people's republic of korea"]},
    "south africa": {"name": "South Africa", "code": "ZA", "aliases": ["southafrica"]},
    "new zealand": {"name": "New Zealand", "code": "NZ", "aliases": ["nz"]},
    "sri lanka": {"name": "Sri Lanka", "code": "LK", "aliases": ["ceylon"]},
}

ISO_COUNTRY_CODES: Dict[str, str] = {
    "afghanistan": "AF", "albania": "AL", "algeria": "DZ", "argentina": "AR",
    "australia": "AU", "austria": "AT", "bangladesh": "BD", "belgium": "BE",
    "brazil": "BR", "bulgaria": "BG", "cambodia": "KH", "canada": "CA",
    "chile": "CL", "china": "CN", "colombia": "CO", "croatia": "HR", "cuba": "CU",
    "czech republic": "CZ", "denmark": "DK", "egypt": "EG", "estonia": "EE",
    "ethiopia": "ET", "finland": "FI", "france": "FR", "germany": "DE",
    "ghana": "GH", "greece": "GR", "hungary": "HU", "iceland": "IS",
    "india": "IN", "indonesia": "ID", "iran": "IR", "iraq": "IQ",
    "ireland": "IE", "israel": "IL", "italy": "IT", "japan": "JP",
    "jordan": "JO", "kenya": "KE", "kuwait": "KW", "lebanon": "LB",
    "libya": "LY", "malaysia": "MY", "mexico": "MX", "morocco": "MA",
    "myanmar": "MM", "netherlands": "NL", "new zealand": "NZ", "nigeria": "NG",
    "norway": "NO", "oman": "OM", "pakistan": "PK", "palestine": "PS",
    "peru": "PE", "philippines": "PH", "poland": "PL", "portugal": "PT",
    "qatar": "QA", "romania": "RO", "russia": "RU", "saudi arabia": "SA", "singapore": "SG",
    "slovakia": "SK", "slovenia": "SI", "somalia": "SO", "south africa": "ZA",
    "south korea": "KR", "spain": "ES", "sri lanka": "LK", "sudan": "SD",
    "sweden": "SE", "switzerland": "CH", "syria": "SY", "taiwan": "TW",
    "thailand": "TH", "tunisia": "TN", "turkey": "TR", "ukraine": "UA",
    "united arab emirates": "AE", "united kingdom": "GB", "united states": "US",
    "venezuela": "VE", "vietnam": "VN", "yemen": "YE", "zimbabwe": "ZW",
}

# Places that commonly stand in for the country itself
LANDMARK_KEYWORDS: Dict[str, List[str]] = {
    "United States": ["washington", "dc", "white house", "congress", "pentagon"],
    "United Kingdom": ["london", "westminster"],
    "Israel": ["gaza", "palestine", "west bank"],
    "Russia": ["moscow", "kremlin"],
    "China": ["beijing", "hong kong"],
}

_LOWERCASE_WORDS = {"and", "of", "the"}


@dataclass(frozen=True)
class CountryOption:
    """A canonical country observed in an event list"""
    key: str  # lowercase canonical name
    label: str
    code: str
    keywords: tuple
    count: int = 0

    def matches(self, country: Optional[str]) -> bool:
        """True if a raw country string refers to this country (exact or alias/keyword)"""
        if not country:
            return False
        value = country.strip().lower()
        if not value:
            return False
        resolved = country_key(value)
        if value == self.key or resolved == self.key:
            return True
        # A recognised country never matches another one by keyword ("united kingdom" vs "united")
        if resolved in ISO_COUNTRY_CODES:
            return False
        # Whole-word keyword hits only: "us" must not match "russia"
        for keyword in self.keywords:
            if value == keyword or re.search(r"\b" + re.escape(keyword) + r"\b", value):
                return True
        return False


def capitalize_country(country: str) -> str:
    words = country.strip().lower().split()
    result = []
    for i, word in enumerate(words):
        if i > 0 and word in _LOWERCASE_WORDS:
            result.append(word)
        else:
            result.append(word[:1].upper() + word[1:])
    return " ".join(result)


def _derive_code(name: str) -> str:
    words = [w for w in name.split() if w]
    if len(words) >= 2:
        return (words[0][:1] + words[1][:1]).upper()
    return name[:2].upper()


def normalize_country(country: str) -> Dict:
    """
    Resolve a raw country string to its canonical name, ISO code and aliases

    Returns:
        dict with keys ``name``, ``code`` and ``aliases``
    """
    lower = country.strip().lower()
    if lower in COUNTRY_ALIASES:
        return COUNTRY_ALIASES[lower]

    name = capitalize_country(country)
    code = ISO_COUNTRY_CODES.get(lower) or _derive_code(name)
    return {"name": name, "code": code, "aliases": [lower]}


def country_key(country: Optional[str]) -> Optional[str]:
    """Case-insensitive canonical key for a raw country string, None if absent"""
    if not country or not country.strip():
        return None
    return normalize_country(country)["name"].lower()


def generate_keywords(name: str, aliases: Iterable[str]) -> List[str]:
    keywords = [name.lower()]
    for alias in aliases:
        if alias.lower() not in keywords:
            keywords.append(alias.lower())
    for word in name.split():
        if len(word) > 2 and word.lower() not in keywords:
            keywords.append(word.lower())
    for landmark in LANDMARK_KEYWORDS.get(name, []):
        if landmark not in keywords:
            keywords.append(landmark)
    return keywords


def extract_countries(events: List[Event]) -> List[CountryOption]:
    """
    Collect the distinct countries referenced by the events' metadata

    Returns:
        CountryOption list sorted by event count (DESC), then label
    """
    counts = Counter()
    resolved = {}
    for event in events:
        if not event.country:
            continue
        info = normalize_country(event.country)
        key = info["name"].lower()
        counts[key] += 1
        resolved.setdefault(key, info)

    options = [
        CountryOption(
            key=key,
            label=info["name"],
            code=info["code"],
            keywords=tuple(generate_keywords(info["name"], info["aliases"])),
            count=counts[key],
        )
        for key, info in resolved.items()
    ]
    options.sort(key=lambda o: (-o.count, o.label))

    logger.debug(f"Extracted {len(options)} countries from {len(events)} events")
    return options
