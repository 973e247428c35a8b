"""Loader for the calendar sources configuration file."""
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from processor.errors import ConfigLoadError
from processor.models import CalendarConfig, EventFilter, Source

logger = logging.getLogger(__name__)


def load_config(path: Union[str, Path]) -> CalendarConfig:
    """
    Load calendar sources from a JSON file.
    
    Args:
        path: Path to the sources configuration
        
    Returns:
        CalendarConfig with one Source per valid configured calendar; invalid
        source entries are logged and skipped
        
    Raises:
        ConfigLoadError: If the file cannot be read, parsed or lacks a sources list
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigLoadError(f"failed to read {path}: {e}") from e
    except ValueError as e:
        raise ConfigLoadError(f"invalid JSON in {path}: {e}") from e
    
    if not isinstance(data, dict) or not isinstance(data.get('sources'), list):
        raise ConfigLoadError(f"{path}: expected an object with a 'sources' list")
    
    sources = []
    for index, entry in enumerate(data['sources']):
        try:
            sources.append(_parse_source(entry, index))
        except ConfigLoadError as e:
            logger.warning(f"Skipping invalid calendar source in {path}: {e}")
            continue

    logger.info(f"Loaded {len(sources)} calendar source(s) from {path}")
    return CalendarConfig(sources=sources)


def _parse_source(entry: Any, index: int) -> Source:
    if not isinstance(entry, dict):
        raise ConfigLoadError(f"source #{index} is not an object")
    
    for key in ('name', 'calendarId'):
        if not isinstance(entry.get(key), str) or not entry[key]:
            raise ConfigLoadError(f"source #{index} is missing '{key}'")
    
    visible = entry.get('visible')
    if visible is not None and not isinstance(visible, bool):
        raise ConfigLoadError(f"source {entry['name']}: 'visible' must be a boolean")
    
    for key in ('contactEmail', 'color', 'website'):
        if entry.get(key) is not None and not isinstance(entry[key], str):
            raise ConfigLoadError(f"source {entry['name']}: '{key}' must be a string")

    return Source(
        name=entry['name'],
        calendar_id=entry['calendarId'],
        contact_email=entry.get('contactEmail') or '',
        color=entry.get('color') or '',
        website=entry.get('website') or '',
        visible=visible,
        event_filter=_parse_filter(entry.get('eventFilter') or {}, entry['name'])
    )


def _parse_filter(data: Dict[str, Any], source_name: str) -> EventFilter:
    if not isinstance(data, dict):
        raise ConfigLoadError(f"source {source_name}: 'eventFilter' must be an object")
    return EventFilter(
        include_keywords=_keyword_list(data, 'includeKeywords', source_name),
        exclude_keywords=_keyword_list(data, 'excludeKeywords', source_name)
    )


def _keyword_list(data: Dict[str, Any], key: str, source_name: str) -> List[str]:
    keywords = data.get(key) or []
    if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
        raise ConfigLoadError(f"source {source_name}: '{key}' must be a list of strings")
    return list(keywords)
