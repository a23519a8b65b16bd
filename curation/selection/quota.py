"""
Quota Allocation Module
Selects a bounded, balanced subset of events across categories, regions and countries
"""

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from loguru import logger

from curation.event.country import country_key, extract_countries
from curation.event.model import Event, MS_PER_HOUR, now_ms

MAX_TOTAL_EVENTS = 150
MAX_NATURAL_DISASTERS = 10
KEY_CATEGORY_REGION_LIMIT = 2
COUNTRY_MIN_STORIES = 1
COUNTRY_TARGET_STORIES = 2

DISASTER_CATEGORIES = frozenset([
    'earthquake', 'volcano', 'wildfire', 'storm', 'tsunami', 'flood', 'natural-disaster'
])
KEY_CATEGORIES = ('politics', 'business', 'technology', 'sports', 'entertainment')
UNREGIONED = "Other"


class QuotaConfigError(ValueError):
    """Raised for an inconsistent quota configuration"""
    pass


@dataclass(frozen=True)
class CategoryTarget:
    category: str
    min_count: int
    max_count: int
    priority: int  # Higher = filled first


@dataclass(frozen=True)
class Region:
    """
    Axis-aligned lat/lng box

    A longitude range with min > max wraps across the antimeridian,
    e.g. (170, -170) covers 170..180 and -180..-170.
    """
    name: str
    lat_range: Tuple[float, float]
    lng_range: Tuple[float, float]
    weight: float = 0.0
    min_stories: int = 0
    target_stories: int = 0

    def contains(self, latitude: float, longitude: float) -> bool:
        lat_min, lat_max = self.lat_range
        if not lat_min <= latitude <= lat_max:
            return False
        lng_min, lng_max = self.lng_range
        if lng_min <= lng_max:
            return lng_min <= longitude <= lng_max
        return longitude >= lng_min or longitude <= lng_max


DEFAULT_CATEGORY_TARGETS = [
    # High priority categories
    CategoryTarget('sports', 10, 15, 10),
    CategoryTarget('science', 10, 15, 10),
    CategoryTarget('entertainment', 8, 12, 9),
    # Standard categories
    CategoryTarget('breaking', 8, 12, 8),
    CategoryTarget('politics', 8, 12, 8),
    CategoryTarget('business', 8, 12, 8),
    CategoryTarget('technology', 8, 12, 8),
    CategoryTarget('health', 8, 12, 8),
    # Lower priority but still represented
    CategoryTarget('crime', 6, 10, 6),
    CategoryTarget('armed-conflict', 6, 10, 6),
    CategoryTarget('terrorism', 4, 8, 5),
    CategoryTarget('civil-unrest', 4, 8, 5),
    # Disasters (also bound by the shared natural-disaster cap)
    CategoryTarget('natural-disaster', 4, 8, 6),
    CategoryTarget('earthquake', 2, 5, 5),
    CategoryTarget('volcano', 2, 6, 4),
    CategoryTarget('wildfire', 3, 7, 5),
    CategoryTarget('storm', 3, 7, 5),
    CategoryTarget('tsunami', 2, 6, 4),
    CategoryTarget('flood', 3, 7, 5),
    # Fallback
    CategoryTarget('other', 4, 8, 4),
]

MAJOR_REGIONS = [
    Region('Americas', (-60, 75), (-180, -30), weight=0.25, min_stories=5, target_stories=10),
    Region('Europe', (35, 75), (-15, 40), weight=0.20, min_stories=4, target_stories=8),
    Region('Asia-Pacific', (-50, 75), (60, 180), weight=0.20, min_stories=4, target_stories=10),
    Region('Middle East', (12, 42), (25, 60), weight=0.12, min_stories=2, target_stories=5),
    Region('Africa', (-35, 35), (-20, 55), weight=0.15, min_stories=4, target_stories=8),
    Region('Oceania', (-50, 0), (110, 180), weight=0.08, min_stories=2, target_stories=5),
]

# Macro-regions used only for entertainment geographic diversity
LEGACY_REGIONS = [
    Region('North America', (15, 75), (-180, -50)),
    Region('South America', (-60, 15), (-90, -30)),
    Region('Europe', (35, 75), (-15, 40)),
    Region('Africa', (-35, 35), (-20, 55)),
    Region('Asia', (-10, 75), (40, 180)),
    Region('Oceania', (-50, 0), (110, 180)),
]


def find_region(event: Event, regions: List[Region]) -> Optional[Region]:
    """First region (table order) containing the event, None if unregioned"""
    for region in regions:
        if region.contains(event.latitude, event.longitude):
            return region
    return None


def priority_score(event: Event, now: int) -> float:
    """
    Tie-break key: severity * 10 + age in hours (DESC)

    Age increases the score, so older events win at equal severity.
    """
    return (event.severity or 0) * 10 + (now - event.timestamp) / MS_PER_HOUR


@dataclass
class QuotaConfig:
    category_targets: List[CategoryTarget] = field(default_factory=lambda: list(DEFAULT_CATEGORY_TARGETS))
    regions: List[Region] = field(default_factory=lambda: list(MAJOR_REGIONS))
    legacy_regions: List[Region] = field(default_factory=lambda: list(LEGACY_REGIONS))
    max_total_events: int = MAX_TOTAL_EVENTS
    max_natural_disasters: int = MAX_NATURAL_DISASTERS
    disaster_categories: frozenset = DISASTER_CATEGORIES
    key_categories: Tuple[str, ...] = KEY_CATEGORIES

    def __post_init__(self):
        self._targets = {t.category: t for t in self.category_targets}
        self.validate()

    def target_for(self, category: str) -> Optional[CategoryTarget]:
        return self._targets.get(category)

    def targets_by_priority(self) -> List[CategoryTarget]:
        # Stable: equal priorities keep table order
        return sorted(self.category_targets, key=lambda t: -t.priority)

    def validate(self):
        for target in self.category_targets:
            if target.min_count < 0 or target.max_count < target.min_count:
                raise QuotaConfigError(
                    f"Category {target.category}: need 0 <= min ({target.min_count}) <= max ({target.max_count})"
                )
        for region in self.regions + self.legacy_regions:
            lat_min, lat_max = region.lat_range
            if not -90 <= lat_min <= lat_max <= 90:
                raise QuotaConfigError(f"Region {region.name}: invalid latitude range {region.lat_range}")
            if not all(-180 <= lng <= 180 for lng in region.lng_range):
                raise QuotaConfigError(f"Region {region.name}: invalid longitude range {region.lng_range}")
            if region.min_stories < 0 or region.target_stories < region.min_stories:
                raise QuotaConfigError(
                    f"Region {region.name}: need 0 <= minStories ({region.min_stories}) "
                    f"<= targetStories ({region.target_stories})"
                )
        if self.max_total_events < 0 or self.max_natural_disasters < 0:
            raise QuotaConfigError("Global caps must be non-negative")

    @staticmethod
    def from_config(config: Dict[str, Any] = None) -> "QuotaConfig":
        """
        Build quota settings from configuration.selection, falling back to defaults

        Recognized keys: category_targets ({category: {min, max, priority}}),
        regions ([{name, lat_range, lng_range, weight, min_stories, target_stories}]),
        max_total_events, max_natural_disasters.
        """
        if not config:
            return QuotaConfig()

        selection = config.get("configuration", {}).get("selection", {})

        targets = {t.category: t for t in DEFAULT_CATEGORY_TARGETS}
        for category, values in selection.get("category_targets", {}).items():
            default = targets.get(category, CategoryTarget(category, 0, 0, 0))
            targets[category] = CategoryTarget(
                category,
                int(values.get("min", default.min_count)),
                int(values.get("max", default.max_count)),
                int(values.get("priority", default.priority)),
            )

        regions = list(MAJOR_REGIONS)
        if "regions" in selection:
            regions = [
                Region(
                    item["name"],
                    tuple(item["lat_range"]),
                    tuple(item["lng_range"]),
                    weight=float(item.get("weight", 0.0)),
                    min_stories=int(item.get("min_stories", 0)),
                    target_stories=int(item.get("target_stories", 0)),
                )
                for item in selection["regions"]
            ]

        return QuotaConfig(
            category_targets=list(targets.values()),
            regions=regions,
            max_total_events=int(selection.get("max_total_events", MAX_TOTAL_EVENTS)),
            max_natural_disasters=int(selection.get("max_natural_disasters", MAX_NATURAL_DISASTERS)),
        )


@dataclass
class CurationState:
    """Running counters for a single allocation run"""
    config: QuotaConfig
    region_of: Dict[str, Optional[Region]]
    selected: List[Event] = field(default_factory=list)
    selected_ids: set = field(default_factory=set)
    category_counts: Counter = field(default_factory=Counter)
    region_counts: Counter = field(default_factory=Counter)
    category_region_counts: Counter = field(default_factory=Counter)
    country_counts: Counter = field(default_factory=Counter)
    disaster_count: int = 0

    @staticmethod
    def start(events: List[Event], config: QuotaConfig) -> "CurationState":
        # Region membership is resolved once per event
        region_of = {event.id: find_region(event, config.regions) for event in events}
        return CurationState(config=config, region_of=region_of)

    def is_disaster(self, event: Event) -> bool:
        return event.category in self.config.disaster_categories

    def disaster_blocked(self, event: Event) -> bool:
        return self.is_disaster(event) and self.disaster_count >= self.config.max_natural_disasters

    def category_full(self, category: str) -> bool:
        target = self.config.target_for(category)
        return target is not None and self.category_counts[category] >= target.max_count

    def can_add_event(self, event: Event) -> bool:
        """False when the event's region has already reached its target"""
        region = self.region_of.get(event.id)
        if region is None:
            return True
        return self.region_counts[region.name] < region.target_stories

    def admissible(self, event: Event, regional: bool = True) -> bool:
        """
        Whether a phase may add the event

        Category minimums pass regional=False: region ceilings only bind
        the phases after them, which still see the counts they leave behind.
        """
        return (
            event.id not in self.selected_ids
            and not self.disaster_blocked(event)
            and not self.category_full(event.category)
            and (not regional or self.can_add_event(event))
            and len(self.selected) < self.config.max_total_events
        )

    def add(self, event: Event):
        region = self.region_of.get(event.id)
        self.selected.append(event)
        self.selected_ids.add(event.id)
        self.category_counts[event.category] += 1
        if region is not None:
            self.region_counts[region.name] += 1
            self.category_region_counts[(event.category, region.name)] += 1
        key = country_key(event.country)
        if key:
            self.country_counts[key] += 1
        if self.is_disaster(event):
            self.disaster_count += 1


def _fill_category_minimums(state: CurationState, by_category: Dict[str, List[Event]]):
    for target in state.config.targets_by_priority():
        taken = 0
        for event in by_category.get(target.category, []):
            if taken >= target.min_count:
                break
            if state.admissible(event, regional=False):
                state.add(event)
                taken += 1
        logger.debug(f"  {target.category}: selected {taken}/{target.min_count} (min quota)")


def _fill_regions(state: CurationState, events: List[Event], goal: str):
    for region in state.config.regions:
        needed = region.min_stories if goal == "min" else region.target_stories
        if state.region_counts[region.name] >= needed:
            continue

        candidates = [e for e in events if state.region_of.get(e.id) is region]
        candidates.sort(key=lambda e: e.severity or 0, reverse=True)

        for event in candidates:
            if state.region_counts[region.name] >= needed:
                break
            if state.admissible(event):
                state.add(event)

        logger.debug(f"  {region.name}: {state.region_counts[region.name]}/{needed} ({goal})")


def _fill_key_category_regions(state: CurationState, by_category: Dict[str, List[Event]]):
    for category in state.config.key_categories:
        for region in state.config.regions:
            if state.category_region_counts[(category, region.name)] >= 1:
                continue
            added = 0
            for event in by_category.get(category, []):
                if added >= KEY_CATEGORY_REGION_LIMIT:
                    break
                if state.region_of.get(event.id) is region and state.admissible(event):
                    state.add(event)
                    added += 1


def _fill_entertainment_diversity(state: CurationState, by_category: Dict[str, List[Event]]):
    category = 'entertainment'
    if state.config.target_for(category) is None or state.category_full(category):
        return

    def legacy_region(event):
        region = find_region(event, state.config.legacy_regions)
        return region.name if region else UNREGIONED

    represented = {legacy_region(e) for e in state.selected if e.category == category}
    candidates = [e for e in by_category.get(category, []) if state.admissible(e)]

    groups: Dict[str, List[Event]] = defaultdict(list)
    for event in candidates:
        groups[legacy_region(event)].append(event)

    # Regions without any entertainment story first, biggest pools first
    underrepresented = sorted(
        (item for item in groups.items() if item[0] not in represented),
        key=lambda item: -len(item[1])
    )
    for name, group in underrepresented:
        for event in group:
            if state.category_full(category):
                return
            if state.admissible(event):
                state.add(event)
                logger.debug(f"  entertainment from {name}: {event.title}")

    for event in candidates:
        if state.category_full(category):
            return
        if state.admissible(event):
            state.add(event)


def _fill_category_maximums(state: CurationState, by_category: Dict[str, List[Event]]):
    for target in state.config.targets_by_priority():
        for event in by_category.get(target.category, []):
            if state.category_full(target.category):
                break
            if state.admissible(event):
                state.add(event)


def _fill_global(state: CurationState, ranked: List[Event]):
    for event in ranked:
        if len(state.selected) >= state.config.max_total_events:
            break
        if state.admissible(event):
            state.add(event)


def _fill_country_floor(state: CurationState, events: List[Event]):
    """Every observed country gets at least one story, even past the total cap"""
    for option in extract_countries(events):
        if state.country_counts[option.key] >= COUNTRY_MIN_STORIES:
            continue

        def available(event):
            return event.id not in state.selected_ids and not state.disaster_blocked(event)

        candidates = [e for e in events if available(e) and country_key(e.country) == option.key]
        if not candidates:
            candidates = [e for e in events if available(e) and option.matches(e.country)]
        candidates.sort(key=lambda e: e.severity or 0, reverse=True)

        for event in candidates:
            if state.country_counts[option.key] >= COUNTRY_MIN_STORIES:
                break
            if state.disaster_blocked(event):
                continue
            state.add(event)
            if country_key(event.country) != option.key:
                state.country_counts[option.key] += 1
            logger.debug(f"  country floor {option.label}: {event.title}")


def allocate_events(
    events: List[Event],
    config: Dict[str, Any] = None,
    now: int = None,
    priority_key: Callable[[Event, int], float] = None,
    quota_config: QuotaConfig = None
) -> List[Event]:
    """
    Select a balanced subset of (deduplicated) events

    Strategy (each phase only adds):
    1. Category minimums, highest priority first
    2. Regional minimums (highest severity from the region)
    3. Regional targets; a region at target admits nothing more
    4. At least one event per key category per region (up to 2 added)
    5. Entertainment from under-represented macro-regions
    6. Category maximums
    7. Global top-up to max_total_events
    8. Country floor: one story per observed country, ignoring the total cap

    The natural-disaster cap and category maximums hold in every phase.

    Args:
        events: Deduplicated events
        config: Configuration dict (configuration.selection)
        now: Reference time in epoch milliseconds
        priority_key: Ranking key, default severity * 10 + age in hours
        quota_config: Pre-built QuotaConfig (overrides config)

    Returns:
        Selected events in allocation order
    """
    if not events:
        return []

    quota_config = quota_config or QuotaConfig.from_config(config)
    if now is None:
        now = now_ms()
    if priority_key is None:
        priority_key = priority_score

    state = CurationState.start(events, quota_config)
    ranked = sorted(events, key=lambda e: priority_key(e, now), reverse=True)

    by_category: Dict[str, List[Event]] = defaultdict(list)
    for event in ranked:
        by_category[event.category].append(event)

    logger.info("Phase 1: Enforcing category minimums")
    _fill_category_minimums(state, by_category)

    logger.info(f"Phase 2: Enforcing regional minimums (current: {len(state.selected)})")
    _fill_regions(state, ranked, "min")

    logger.info(f"Phase 3: Filling regional targets (current: {len(state.selected)})")
    _fill_regions(state, ranked, "target")

    logger.info(f"Phase 4: Key categories per region (current: {len(state.selected)})")
    _fill_key_category_regions(state, by_category)

    logger.info(f"Phase 5: Entertainment geographic diversity (current: {len(state.selected)})")
    _fill_entertainment_diversity(state, by_category)

    logger.info(f"Phase 6: Filling category maximums (current: {len(state.selected)})")
    _fill_category_maximums(state, by_category)

    logger.info(f"Phase 7: Global top-up (current: {len(state.selected)}/{quota_config.max_total_events})")
    _fill_global(state, ranked)

    logger.info(f"Phase 8: Country floor (current: {len(state.selected)})")
    _fill_country_floor(state, events)

    _log_distribution(state)
    return state.selected


def summarize_distribution(selected: List[Event], config: Dict[str, Any] = None) -> Dict[str, Any]:
    """Per-category, per-region and per-country counts of a selection"""
    quota_config = QuotaConfig.from_config(config)
    regions = Counter()
    for event in selected:
        region = find_region(event, quota_config.regions)
        regions[region.name if region else UNREGIONED] += 1

    return {
        "total": len(selected),
        "categories": dict(Counter(e.category for e in selected)),
        "regions": dict(regions),
        "countries": dict(Counter(k for k in (country_key(e.country) for e in selected) if k)),
        "natural_disasters": sum(1 for e in selected if e.category in quota_config.disaster_categories),
    }


def _log_distribution(state: CurationState):
    config = state.config
    logger.info(f"Final selection: {len(state.selected)} events")
    logger.info("Category distribution:")
    for category, count in sorted(state.category_counts.items(), key=lambda x: -x[1]):
        target = config.target_for(category)
        if target:
            logger.info(f"  {category}: {count} (min: {target.min_count}, max: {target.max_count})")
        else:
            logger.info(f"  {category}: {count}")
    logger.info("Regional quotas:")
    for region in config.regions:
        logger.info(
            f"  {region.name}: {state.region_counts[region.name]}/{region.target_stories} "
            f"(min: {region.min_stories})"
        )
    logger.info(f"Natural disasters: {state.disaster_count} / {config.max_natural_disasters}")
    logger.info(f"Countries covered: {sum(1 for c in state.country_counts.values() if c > 0)}")
    for country, count in sorted(state.country_counts.items()):
        logger.debug(f"  {country}: {count}/{COUNTRY_TARGET_STORIES} (min: {COUNTRY_MIN_STORIES})")
