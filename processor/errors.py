"""Exception hierarchy for calendar sync."""
from typing import Optional


class CalendarSyncError(Exception):
    """Base exception for calendar sync operations."""

    pass


class ConfigLoadError(CalendarSyncError):
    """Calendar sources configuration could not be loaded."""

    pass


class CalendarAPIError(CalendarSyncError):
    """Base exception for Google Calendar API requests."""

    pass


class NetworkError(CalendarAPIError):
    """Transport failure or timeout."""

    pass


class ProtocolError(CalendarAPIError):
    """API responded with a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(CalendarSyncError):
    """Response body or catalog file is not well-formed JSON of the expected shape."""

    pass


class EncodeError(CalendarSyncError):
    """Catalog could not be serialized to JSON."""

    pass


class CatalogIOError(CalendarSyncError):
    """Catalog file could not be read or written."""

    pass


class SourceFetchError(CalendarSyncError):
    """Fetching events for a configured source failed."""

    def __init__(self, source_name: str, cause: Exception):
        super().__init__(f"failed to fetch events for {source_name}: {cause}")
        self.source_name = source_name
        self.cause = cause


class NormalizationError(CalendarSyncError):
    """A raw event could not be converted to the catalog format."""

    def __init__(self, event_id: str, message: str):
        super().__init__(f"event {event_id}: {message}")
        self.event_id = event_id


class MissingDateError(NormalizationError):
    """Event endpoint has neither a date nor a date-time."""

    pass


class InvalidDateError(NormalizationError):
    """Event date-time is not valid RFC3339."""

    pass
