"""Keyword filtering of calendar events per configured source."""
import logging
from typing import List

from fetcher.google_calendar import GoogleCalendarClient
from processor.errors import CalendarAPIError, DecodeError, SourceFetchError
from processor.models import EventFilter, RawEvent, Source

logger = logging.getLogger(__name__)

CANCELLED_STATUS = 'cancelled'


def should_include_event(event: RawEvent, event_filter: EventFilter) -> bool:
    """
    Decide whether an event passes a source's keyword filter.
    
    Matching is a case-insensitive substring test against the summary and
    description. Exclude keywords win over include keywords, and an empty
    include list matches everything that is not excluded. Empty keywords
    are ignored.
    
    Args:
        event: Raw event to test
        event_filter: Include/exclude keyword rules
        
    Returns:
        True if the event should be kept
    """
    event_text = f"{event.summary} {event.description}".lower()
    
    for keyword in event_filter.exclude_keywords:
        if keyword and keyword.lower() in event_text:
            return False
    
    if not event_filter.include_keywords:
        return True
    
    for keyword in event_filter.include_keywords:
        if keyword and keyword.lower() in event_text:
            return True
    
    return False


def fetch_filtered_events(client: GoogleCalendarClient, source: Source,
                          time_min: str, time_max: str) -> List[RawEvent]:
    """
    Fetch a source's events and drop cancelled or filtered-out ones.
    
    Args:
        client: Calendar API client
        source: Configured calendar source
        time_min: Lower bound, RFC3339 UTC
        time_max: Upper bound, RFC3339 UTC
        
    Returns:
        Kept events in provider order
        
    Raises:
        SourceFetchError: Wrapping the client error, annotated with the source name
    """
    try:
        events = client.get_events(source.calendar_id, time_min, time_max)
    except (CalendarAPIError, DecodeError) as e:
        raise SourceFetchError(source.name, e) from e
    
    filtered = [
        event for event in events
        if event.status != CANCELLED_STATUS
        and should_include_event(event, source.event_filter)
    ]
    
    logger.info(
        f"Kept {len(filtered)} of {len(events)} events from {source.name}",
        extra={'source': source.name, 'calendar_id': source.calendar_id}
    )
    return filtered
