"""
Event Records
Normalized news-event input records and the timeline projection built from them
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from dateutil import parser as date_parser
from dateutil import tz

CATEGORIES = (
    # News
    "breaking", "politics", "sports", "business", "technology",
    "entertainment", "health", "science", "crime",
    # Conflict
    "armed-conflict", "terrorism", "civil-unrest",
    # Disasters
    "natural-disaster", "earthquake", "volcano", "wildfire", "storm", "tsunami", "flood",
    # Fallback
    "other",
)

DEFAULT_CATEGORY = "other"
DEFAULT_SEVERITY = 5.0
DEFAULT_SOURCE = "Unknown"

MS_PER_HOUR = 60 * 60 * 1000
MS_PER_DAY = 24 * MS_PER_HOUR


class InvalidEventError(ValueError):
    """Raised when a record breaks the normalized input contract"""
    pass


def now_ms() -> int:
    """Current UTC time in epoch milliseconds"""
    return int(datetime.now(tz.tzutc()).timestamp() * 1000)


def parse_timestamp(value: Any) -> int:
    """
    Convert an epoch-millisecond number or an ISO-8601 string to epoch milliseconds

    Raises:
        InvalidEventError: value is neither a finite number nor a parseable date
    """
    if isinstance(value, bool):
        raise InvalidEventError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidEventError(f"Invalid timestamp: {value!r}")
        return int(value)
    if isinstance(value, str):
        try:
            parsed = date_parser.isoparse(value)
        except ValueError as e:
            raise InvalidEventError(f"Unparseable timestamp {value!r}: {e}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=tz.tzutc())
        return int(parsed.timestamp() * 1000)
    raise InvalidEventError(f"Invalid timestamp: {value!r}")


def normalize_category(category: Optional[str]) -> str:
    if not category:
        return DEFAULT_CATEGORY
    category = str(category).strip().lower()
    return category if category in CATEGORIES else DEFAULT_CATEGORY


def _coordinate(name: str, value: Any, limit: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidEventError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(value) or not -limit <= value <= limit:
        raise InvalidEventError(f"{name} {value} outside [-{limit}, {limit}]")
    return float(value)


@dataclass(frozen=True)
class Event:
    """A single normalized news event"""
    id: str
    title: str
    category: str
    severity: float
    latitude: float
    longitude: float
    timestamp: int  # epoch milliseconds
    source: str = DEFAULT_SOURCE
    description: Optional[str] = None
    # country, location_name, url, source_tier, is_ongoing, article_count
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if not self.id:
            raise InvalidEventError("Event id is required")
        if self.title is None:
            raise InvalidEventError(f"Event {self.id} has no title")
        _coordinate("latitude", self.latitude, 90)
        _coordinate("longitude", self.longitude, 180)
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, (int, float)) \
                or not math.isfinite(self.timestamp):
            raise InvalidEventError(f"Event {self.id} timestamp must be epoch milliseconds")
        object.__setattr__(self, "category", normalize_category(self.category))

    @property
    def country(self) -> Optional[str]:
        country = self.metadata.get("country")
        return country if isinstance(country, str) and country.strip() else None

    @property
    def location_name(self) -> Optional[str]:
        return self.metadata.get("location_name")

    @property
    def url(self) -> Optional[str]:
        return self.metadata.get("url")

    @property
    def source_tier(self) -> Optional[int]:
        return self.metadata.get("source_tier")

    @property
    def is_ongoing(self) -> bool:
        return bool(self.metadata.get("is_ongoing", False))

    @property
    def article_count(self) -> int:
        return self.metadata.get("article_count") or 1

    def age_hours(self, now: int) -> float:
        return (now - self.timestamp) / MS_PER_HOUR

    def with_severity(self, severity: float) -> "Event":
        return replace(self, severity=severity)

    @staticmethod
    def from_dict(obj_dict: Dict[str, Any]) -> "Event":
        """
        Build an Event from a JSON-style dict

        Accepts both snake_case and camelCase keys (``type`` for category,
        ``sourceTier``, ``isOngoing``, ``articleCount``, ``locationName``).
        Optional fields default safely; coordinates and timestamps must be valid.
        """
        metadata = dict(obj_dict.get("metadata") or {})
        aliases = {
            "sourceTier": "source_tier",
            "isOngoing": "is_ongoing",
            "articleCount": "article_count",
            "locationName": "location_name",
        }
        for camel, snake in aliases.items():
            if camel in metadata:
                metadata.setdefault(snake, metadata.pop(camel))
        # Flat records carry these at the top level
        for key in ("isOngoing", "is_ongoing", "articleCount", "article_count"):
            if key in obj_dict:
                metadata.setdefault(aliases.get(key, key), obj_dict[key])

        severity = obj_dict.get("severity")
        return Event(
            id=str(obj_dict.get("id") or ""),
            title=obj_dict.get("title"),
            category=obj_dict.get("category") or obj_dict.get("type"),
            severity=float(severity) if severity is not None else DEFAULT_SEVERITY,
            latitude=obj_dict.get("latitude"),
            longitude=obj_dict.get("longitude"),
            timestamp=parse_timestamp(obj_dict.get("timestamp")),
            source=obj_dict.get("source") or DEFAULT_SOURCE,
            description=obj_dict.get("description"),
            metadata=metadata,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "severity": self.severity,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
            "source": self.source,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class TimelineEvent:
    """Read-only timeline view of an Event"""
    id: str
    title: str
    timestamp: int
    source: str
    severity: float
    url: Optional[str] = None
    location: Optional[str] = None

    @staticmethod
    def from_event(event: Event, severity: float) -> "TimelineEvent":
        return TimelineEvent(
            id=event.id,
            title=event.title,
            timestamp=event.timestamp,
            source=event.source or DEFAULT_SOURCE,
            severity=severity,
            url=event.url,
            location=event.location_name,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "title": self.title,
            "timestamp": self.timestamp,
            "source": self.source,
            "severity": self.severity,
        }
        if self.url:
            data["url"] = self.url
        if self.location:
            data["location"] = self.location
        return data
