"""Client for the Google Calendar events API."""
import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from processor.errors import DecodeError, NetworkError, ProtocolError
from processor.models import RawEvent

logger = logging.getLogger(__name__)


class GoogleCalendarClient:
    """Read-only client for public Google Calendars."""
    
    BASE_URL = "https://www.googleapis.com/calendar/v3"
    
    def __init__(self, api_key: str = '', timeout: int = 30,
                 session: Optional[requests.Session] = None):
        """
        Initialize the calendar client.
        
        Args:
            api_key: Google API key, omitted from requests when empty
            timeout: HTTP request timeout in seconds per page (default: 30)
            session: Optional requests session to reuse connections
        """
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
    
    def get_events(self, calendar_id: str, time_min: str, time_max: str) -> List[RawEvent]:
        """
        Fetch every event of a calendar within a time window.
        
        Follows ``nextPageToken`` until the API stops returning one and
        concatenates the items of all pages in page order. There is no
        retry: a failed page aborts the whole fetch.
        
        Args:
            calendar_id: Calendar identifier (usually an email-like address)
            time_min: Lower bound, RFC3339 UTC
            time_max: Upper bound, RFC3339 UTC
            
        Returns:
            List of RawEvent objects in provider order
            
        Raises:
            NetworkError: On connection failure or timeout
            ProtocolError: If the API responds with a non-200 status
            DecodeError: If a response body is not a valid events page
        """
        url = f"{self.BASE_URL}/calendars/{quote(calendar_id, safe='@')}/events"
        events = []
        page_token = None
        page = 0
        
        while True:
            page += 1
            params = {
                'timeMin': time_min,
                'timeMax': time_max,
                'singleEvents': 'true',
                'orderBy': 'startTime'
            }
            if self.api_key:
                params['key'] = self.api_key
            if page_token:
                params['pageToken'] = page_token
            
            logger.debug(f"Requesting page {page} of calendar {calendar_id}")
            page_events, page_token = self._fetch_page(url, params)
            events.extend(page_events)
            
            if not page_token:
                break
        
        logger.info(
            f"Fetched {len(events)} events from calendar {calendar_id} "
            f"in {page} page(s)"
        )
        return events
    
    def _fetch_page(self, url: str, params: dict) -> tuple[List[RawEvent], Optional[str]]:
        """
        Fetch and decode a single events page.

        Returns:
            Tuple of (events, next_page_token)
        """
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as e:
            raise NetworkError(f"failed to fetch events: {e}") from e
        
        if response.status_code != 200:
            raise ProtocolError(
                f"API request failed with status {response.status_code}",
                status_code=response.status_code
            )
        
        try:
            body = response.json()
        except ValueError as e:
            raise DecodeError(f"failed to decode response: {e}") from e
        
        if not isinstance(body, dict):
            raise DecodeError("failed to decode response: expected a JSON object")
        
        items = body.get('items') or []
        if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
            raise DecodeError("failed to decode response: 'items' is not a list of objects")

        page_token = body.get('nextPageToken') or None
        if page_token is not None and not isinstance(page_token, str):
            raise DecodeError("failed to decode response: 'nextPageToken' is not a string")

        try:
            events = [RawEvent.from_api(item) for item in items]
        except DecodeError as e:
            raise DecodeError(f"failed to decode response: {e}") from e

        return events, page_token
