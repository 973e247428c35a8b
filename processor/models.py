"""Data models for calendar sync."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from processor.errors import DecodeError


@dataclass(frozen=True)
class EventFilter:
    """Keyword rules applied to a source's events."""
    include_keywords: List[str] = field(default_factory=list)
    exclude_keywords: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Source:
    """One configured calendar feed plus its display metadata."""
    name: str
    calendar_id: str
    contact_email: str = ''
    color: str = ''
    website: str = ''
    visible: Optional[bool] = None
    event_filter: EventFilter = field(default_factory=EventFilter)


@dataclass(frozen=True)
class CalendarConfig:
    """Calendar sources configuration."""
    sources: List[Source]


@dataclass
class EventDateTime:
    """Start or end of a provider event: an all-day date or a date-time."""
    date_time: str = ''
    date: str = ''
    time_zone: str = ''

    @classmethod
    def from_api(cls, data: Optional[Dict[str, Any]], field_name: str = 'endpoint') -> 'EventDateTime':
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise DecodeError(f"{field_name} is not an object")
        return cls(
            date_time=_string_field(data, 'dateTime', field_name),
            date=_string_field(data, 'date', field_name),
            time_zone=_string_field(data, 'timeZone', field_name)
        )


@dataclass
class RawEvent:
    """Event as returned by the Google Calendar API."""
    id: str
    summary: str
    description: str
    location: str
    start: EventDateTime
    end: EventDateTime
    html_link: str
    status: str

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> 'RawEvent':
        """
        Build a RawEvent from one item of an events list response.

        Args:
            item: Decoded JSON object from the response's ``items`` array

        Returns:
            RawEvent with missing text fields set to empty strings

        Raises:
            DecodeError: If ``start``/``end`` are not objects or a text field is not a string
        """
        event_id = _string_field(item, 'id', 'item')
        context = f"item {event_id}" if event_id else 'item'
        return cls(
            id=event_id,
            summary=_string_field(item, 'summary', context),
            description=_string_field(item, 'description', context),
            location=_string_field(item, 'location', context),
            start=EventDateTime.from_api(item.get('start'), f"{context} start"),
            end=EventDateTime.from_api(item.get('end'), f"{context} end"),
            html_link=_string_field(item, 'htmlLink', context),
            status=_string_field(item, 'status', context)
        )


def _string_field(data: Dict[str, Any], key: str, context: str) -> str:
    value = data.get(key)
    if value is None:
        return ''
    if not isinstance(value, str):
        raise DecodeError(f"{context}: '{key}' is not a string")
    return value


@dataclass
class NormalizedEvent:
    """Event in the site's catalog format."""
    id: str
    title: str
    description: str
    type: str
    start_date: str
    end_date: str
    start_time: str
    end_time: str
    location: str
    website: str
    gcal_link: str
    visible: bool
    color: str

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a catalog record with a fixed key order."""
        record = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'type': self.type,
            'startDate': self.start_date,
            'endDate': self.end_date,
            'startTime': self.start_time,
            'endTime': self.end_time,
            'location': self.location,
            'website': self.website,
        }
        if self.gcal_link:
            record['gcalLink'] = self.gcal_link
        record['visible'] = self.visible
        record['color'] = self.color
        return record


@dataclass
class SyncSummary:
    """Result of a sync run."""
    sources_processed: int = 0
    sources_failed: int = 0
    events_fetched: int = 0
    events_normalized: int = 0
    events_written: int = 0
    errors: list[str] = field(default_factory=list)
