"""Event normalizer converting Google Calendar events to catalog records."""
import logging
import re
from datetime import datetime
from typing import List, Optional

from processor.errors import InvalidDateError, MissingDateError, NormalizationError
from processor.models import EventDateTime, NormalizedEvent, RawEvent, Source

logger = logging.getLogger(__name__)

_UNSAFE_NAME_CHARS = re.compile(r'[^a-z0-9-]')


def sanitize_source_name(name: str) -> str:
    """
    Convert a source name to a lowercase, hyphenated ID component.
    
    Spaces become hyphens and anything that is not an ASCII letter, digit
    or hyphen is dropped, e.g. ``"Boulder Makers!"`` -> ``"boulder-makers"``.
    """
    return _UNSAFE_NAME_CHARS.sub('', name.lower().replace(' ', '-'))


class EventNormalizer:
    """Normalizer for Google Calendar events."""
    
    EVENT_TYPE = 'static'
    ALL_DAY_TIME = '00:00'
    
    # RFC3339 date-time: any number of fractional digits, offset "Z" or "+HH:MM"
    RFC3339_PATTERN = re.compile(
        r'(\d{4}-\d{2}-\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.\d+)?(Z|[+-]\d{2}:\d{2})',
        re.ASCII
    )

    def normalize_events(self, raw_events: List[RawEvent], source: Source) -> List[NormalizedEvent]:
        """
        Normalize a batch of events from one source.
        
        Events that fail to normalize are logged and skipped.
        
        Args:
            raw_events: Filtered raw events from the source
            source: Source the events came from
            
        Returns:
            List of NormalizedEvent objects in input order
        """
        normalized_events = []
        
        for event in raw_events:
            try:
                normalized_events.append(self.normalize_event(event, source))
            except NormalizationError as e:
                logger.warning(
                    f"Failed to normalize event {event.id} from {source.name}: {e}",
                    extra={'source': source.name, 'event_id': event.id}
                )
                continue
        
        logger.info(
            f"Normalized {len(normalized_events)} of {len(raw_events)} events "
            f"from {source.name}"
        )
        return normalized_events
    
    def normalize_event(self, event: RawEvent, source: Source) -> NormalizedEvent:
        """
        Convert a single Google Calendar event to the catalog format.
        
        Args:
            event: Raw event
            source: Source supplying website, color and visibility
            
        Returns:
            NormalizedEvent
            
        Raises:
            MissingDateError: If start or end has neither date nor date-time
            InvalidDateError: If a date-time cannot be parsed
        """
        start_date, start_time = self._parse_event_datetime(event.start, event.id, 'start')
        end_date, end_time = self._parse_event_datetime(event.end, event.id, 'end')
        
        return NormalizedEvent(
            id=self.generate_event_id(source.name, event.id),
            title=event.summary,
            description=event.description,
            type=self.EVENT_TYPE,
            start_date=start_date,
            end_date=end_date,
            start_time=start_time,
            end_time=end_time,
            location=event.location,
            website=source.website,
            gcal_link=event.html_link,
            visible=True if source.visible is None else source.visible,
            color=source.color
        )
    
    def generate_event_id(self, source_name: str, event_id: str) -> str:
        """
        Build the catalog identifier for an event.
        
        Uses the source name verbatim, not its sanitized form.
        """
        return f"{source_name}-{event_id}"
    
    def _parse_event_datetime(self, edt: EventDateTime, event_id: str, endpoint: str) -> tuple[str, str]:
        """
        Split an event endpoint into date and time strings.
        
        All-day dates are used as-is with time ``00:00``. Date-times keep the
        offset they carry; no timezone conversion is done.
        
        Returns:
            Tuple of (YYYY-MM-DD, HH:MM)
        """
        if edt.date:
            return edt.date, self.ALL_DAY_TIME
        
        if edt.date_time:
            if not isinstance(edt.date_time, str):
                raise InvalidDateError(
                    event_id, f"{endpoint} datetime is not a string: {edt.date_time!r}"
                )
            parsed = self._parse_rfc3339(edt.date_time)
            if parsed is None:
                raise InvalidDateError(
                    event_id, f"failed to parse {endpoint} datetime: {edt.date_time!r}"
                )
            return parsed.strftime('%Y-%m-%d'), parsed.strftime('%H:%M')

        raise MissingDateError(event_id, f"{endpoint} has no date or datetime")

    def _parse_rfc3339(self, value: str) -> Optional[datetime]:
        """
        Parse an RFC3339 date-time, keeping its own offset.

        Fractional seconds are ignored since only minutes are kept.

        Returns:
            Timezone-aware datetime, or None if the value is not RFC3339
        """
        match = self.RFC3339_PATTERN.fullmatch(value)
        if not match:
            return None

        day, hour, minute, second, offset = match.groups()
        if offset == 'Z':
            offset = '+00:00'
        try:
            return datetime.strptime(
                f"{day}T{hour}:{minute}:{second}{offset}", '%Y-%m-%dT%H:%M:%S%z'
            )
        except ValueError:
            return None
