import os, json, datetime
from typing import Any, Dict, List

import yaml
from dotenv import load_dotenv
from loguru import logger

from curation.event.model import Event, now_ms
from curation.selection.scorer import recalculate_severities
from curation.selection.dedup import deduplicate
from curation.selection.quota import allocate_events, summarize_distribution
from curation.selection.timeline import build_topic_timeline

BASE_DIR = os.path.dirname(__file__)
DEFAULT_RESOURCE = os.path.join(BASE_DIR, "resources")

# Environment variable -> configuration.selection key
ENV_OVERRIDES = {
    "MAX_TOTAL_EVENTS": "max_total_events",
    "MAX_NATURAL_DISASTERS": "max_natural_disasters",
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_curation_config(resource: str = None) -> Dict[str, Any]:
    """
    Load curation configuration from a JSON/YAML file or a directory of them

    Files in a directory are merged in name order. MAX_TOTAL_EVENTS and
    MAX_NATURAL_DISASTERS environment variables override the selection caps.
    """
    resource = resource or os.environ.get("CURATION_CONFIG") or DEFAULT_RESOURCE
    config: Dict[str, Any] = {}

    def load_config_with(path):
        with open(path, "r", encoding="utf-8") as fp:
            if path.endswith((".yaml", ".yml")):
                data = yaml.safe_load(fp) or {}
            else:
                data = json.load(fp)
        _merge(config, data)
        logger.debug(f"Loaded curation config from {path}")

    if os.path.isdir(resource):
        for file in sorted(os.listdir(resource)):
            if file.endswith((".json", ".yaml", ".yml")):
                load_config_with(os.path.join(resource, file))
    else:
        load_config_with(resource)

    selection = config.setdefault("configuration", {}).setdefault("selection", {})
    for env_name, key in ENV_OVERRIDES.items():
        if os.environ.get(env_name):
            selection[key] = int(os.environ[env_name])
            logger.info(f"{env_name} override: {selection[key]}")

    return config


def curate_feed(events: List[Event], config: Dict[str, Any] = None, now: int = None) -> List[Event]:
    """
    Balanced feed selection

    1. Recompute severity (configuration.selection.rescore_severity, default on)
    2. Deduplicate overlapping stories
    3. Allocate across category / region / country quotas
    """
    if not events:
        return []
    if now is None:
        now = now_ms()

    selection = (config or {}).get("configuration", {}).get("selection", {})
    if selection.get("rescore_severity", True):
        events = recalculate_severities(events, now)

    unique_events = deduplicate(events, config, now)
    selected = allocate_events(unique_events, config, now)
    logger.info(f"Curated feed: {len(events)} -> {len(unique_events)} unique -> {len(selected)} selected")
    return selected


def decode_events(path: str) -> List[Event]:
    """Read a JSON list of event records"""
    with open(path, "r", encoding="utf-8") as fp:
        object_list = json.load(fp)
    return [Event.from_dict(item) for item in object_list]


def save_json(data: Any, path: str):
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fp:
        json.dump(data, fp, indent=2, ensure_ascii=False)
    logger.info(f"✅ Saved {path}")


def execute(events_path: str, output_path: str = None, resource: str = None) -> Dict[str, Any]:
    """Curate a feed from an event file and optionally write the result"""
    load_dotenv()
    config = load_curation_config(resource)

    try:
        events = decode_events(events_path)
        logger.info(f"Loaded {len(events)} events from {events_path}")
        selected = curate_feed(events, config)
    except Exception as e:
        logger.exception(f"Curation failed for {events_path}: {e}")
        raise

    result = {
        "generated_at": datetime.datetime.now().isoformat(),
        "total_events": len(events),
        "selected_events": len(selected),
        "distribution": summarize_distribution(selected, config),
        "events": [event.to_dict() for event in selected],
    }

    if output_path:
        save_json(result, output_path)
    return result


def execute_timeline(events_path: str, output_path: str = None, resource: str = None) -> Dict[str, Any]:
    """Build a topic timeline from an event file holding one topic's events"""
    load_dotenv()
    config = load_curation_config(resource)

    try:
        events = decode_events(events_path)
        timeline = build_topic_timeline(events, config)
    except Exception as e:
        logger.exception(f"Timeline build failed for {events_path}: {e}")
        raise

    result = {
        "timeline": [item.to_dict() for item in timeline],
        "total_events": len(events),
        "selected_events": len(timeline),
        "date_range": {
            "oldest": timeline[0].timestamp if timeline else 0,
            "newest": timeline[-1].timestamp if timeline else 0,
        },
    }

    if output_path:
        save_json(result, output_path)
    return result
