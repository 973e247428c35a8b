"""Unit tests for GoogleCalendarClient."""
from urllib.parse import parse_qs, urlparse

import pytest
import responses
from requests.exceptions import ConnectionError, Timeout

from fetcher.google_calendar import GoogleCalendarClient
from processor.errors import DecodeError, NetworkError, ProtocolError

EVENTS_URL = "https://www.googleapis.com/calendar/v3/calendars/community-calendar/events"
TIME_MIN = "2024-01-01T00:00:00Z"
TIME_MAX = "2025-01-31T23:59:59Z"


def _item(event_id, summary="Event"):
    return {
        "id": event_id,
        "summary": summary,
        "description": "Details",
        "location": "Library",
        "start": {"dateTime": "2024-03-05T18:30:00-07:00", "timeZone": "America/Denver"},
        "end": {"dateTime": "2024-03-05T20:00:00-07:00", "timeZone": "America/Denver"},
        "htmlLink": f"https://www.google.com/calendar/event?eid={event_id}",
        "status": "confirmed"
    }


def _query(call):
    return parse_qs(urlparse(call.request.url).query)


class TestGoogleCalendarClient:
    """Test cases for GoogleCalendarClient class."""
    
    @responses.activate
    def test_get_events_single_page(self):
        """Test fetching a calendar that fits in one page."""
        responses.add(
            responses.GET,
            EVENTS_URL,
            json={"items": [_item("e1", "Meetup")]},
            status=200
        )
        
        client = GoogleCalendarClient(api_key="secret")
        events = client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert len(events) == 1
        assert events[0].id == "e1"
        assert events[0].summary == "Meetup"
        assert events[0].start.date_time == "2024-03-05T18:30:00-07:00"
        assert events[0].start.time_zone == "America/Denver"
        assert events[0].html_link.endswith("eid=e1")
        assert events[0].status == "confirmed"
    
    @responses.activate
    def test_get_events_sends_query_parameters(self):
        """Test that the window, expansion, ordering and key are sent."""
        responses.add(responses.GET, EVENTS_URL, json={"items": []}, status=200)
        
        client = GoogleCalendarClient(api_key="secret")
        client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        query = _query(responses.calls[0])
        assert query["timeMin"] == [TIME_MIN]
        assert query["timeMax"] == [TIME_MAX]
        assert query["singleEvents"] == ["true"]
        assert query["orderBy"] == ["startTime"]
        assert query["key"] == ["secret"]
        assert "pageToken" not in query
    
    @responses.activate
    def test_get_events_without_api_key(self):
        """Test that no key parameter is sent when the key is empty."""
        responses.add(responses.GET, EVENTS_URL, json={"items": []}, status=200)
        
        client = GoogleCalendarClient()
        events = client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert events == []
        assert "key" not in _query(responses.calls[0])
    
    @responses.activate
    def test_get_events_follows_page_tokens(self):
        """Test that all pages are concatenated in page order."""
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [_item("a1"), _item("a2")], "nextPageToken": "page-2"},
            status=200
        )
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [_item("b1")], "nextPageToken": "page-3"},
            status=200
        )
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [_item("c1"), _item("c2")]},
            status=200
        )
        
        client = GoogleCalendarClient()
        events = client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert [e.id for e in events] == ["a1", "a2", "b1", "c1", "c2"]
        assert len(responses.calls) == 3
        assert "pageToken" not in _query(responses.calls[0])
        assert _query(responses.calls[1])["pageToken"] == ["page-2"]
        assert _query(responses.calls[2])["pageToken"] == ["page-3"]
    
    @responses.activate
    def test_get_events_empty_page_token_ends_pagination(self):
        """Test that an empty nextPageToken is treated as the last page."""
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [_item("e1")], "nextPageToken": ""},
            status=200
        )
        
        client = GoogleCalendarClient()
        events = client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert len(events) == 1
        assert len(responses.calls) == 1
    
    @responses.activate
    def test_get_events_missing_items(self):
        """Test that a page without items yields no events."""
        responses.add(responses.GET, EVENTS_URL, json={"kind": "calendar#events"}, status=200)
        
        client = GoogleCalendarClient()
        
        assert client.get_events("community-calendar", TIME_MIN, TIME_MAX) == []
    
    @responses.activate
    def test_get_events_http_error_status(self):
        """Test that a non-200 status raises ProtocolError without retrying."""
        responses.add(responses.GET, EVENTS_URL, body="Not Found", status=404)
        
        client = GoogleCalendarClient()
        
        with pytest.raises(ProtocolError) as exc_info:
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert exc_info.value.status_code == 404
        assert len(responses.calls) == 1
    
    @responses.activate
    def test_get_events_failure_on_later_page_aborts(self):
        """Test that a failing second page discards the first page."""
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [_item("a1")], "nextPageToken": "page-2"},
            status=200
        )
        responses.add(responses.GET, EVENTS_URL, body="Server Error", status=500)
        
        client = GoogleCalendarClient()
        
        with pytest.raises(ProtocolError):
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert len(responses.calls) == 2
    
    @responses.activate
    def test_get_events_timeout(self):
        """Test that a timeout raises NetworkError."""
        responses.add(responses.GET, EVENTS_URL, body=Timeout("Request timed out"))
        
        client = GoogleCalendarClient(timeout=30)
        
        with pytest.raises(NetworkError) as exc_info:
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert isinstance(exc_info.value.__cause__, Timeout)
        assert len(responses.calls) == 1
    
    @responses.activate
    def test_get_events_connection_error(self):
        """Test that a connection failure raises NetworkError."""
        responses.add(responses.GET, EVENTS_URL, body=ConnectionError("refused"))
        
        client = GoogleCalendarClient()
        
        with pytest.raises(NetworkError):
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
    
    @responses.activate
    def test_get_events_malformed_body(self):
        """Test that a non-JSON body raises DecodeError."""
        responses.add(responses.GET, EVENTS_URL, body="<html>oops</html>", status=200)
        
        client = GoogleCalendarClient()
        
        with pytest.raises(DecodeError):
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
    
    @responses.activate
    def test_get_events_items_not_a_list(self):
        """Test that a body with a non-list items field raises DecodeError."""
        responses.add(responses.GET, EVENTS_URL, json={"items": "nope"}, status=200)
        
        client = GoogleCalendarClient()
        
        with pytest.raises(DecodeError):
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
    
    @responses.activate
    def test_get_events_all_day_item(self):
        """Test that all-day items keep their date and missing fields become empty."""
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [{"id": "d1", "start": {"date": "2024-07-04"}, "end": {"date": "2024-07-05"}}]},
            status=200
        )
        
        client = GoogleCalendarClient()
        events = client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert events[0].start.date == "2024-07-04"
        assert events[0].start.date_time == ""
        assert events[0].summary == ""
        assert events[0].status == ""
    
    @pytest.mark.parametrize("bad_fields", [
        {"start": "2024-01-01"},
        {"end": ["2024-01-01"]},
        {"start": {"dateTime": 1704067200}},
        {"start": {"date": 20240101}},
        {"summary": {"text": "Meetup"}},
        {"id": 17},
        {"status": False}
    ])
    def test_get_events_malformed_item(self, bad_fields):
        """Test that an item with wrongly typed fields raises DecodeError."""
        item = _item("e2")
        item.update(bad_fields)
        client = GoogleCalendarClient()

        with responses.RequestsMock() as rsps:
            rsps.add(
                responses.GET, EVENTS_URL,
                json={"items": [_item("e1"), item]},
                status=200
            )
            with pytest.raises(DecodeError):
                client.get_events("community-calendar", TIME_MIN, TIME_MAX)
    
    @responses.activate
    def test_get_events_null_fields_become_empty(self):
        """Test that explicit nulls are read like missing fields."""
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [{"id": "e1", "description": None, "start": None,
                             "end": {"date": "2024-07-05", "timeZone": None}}]},
            status=200
        )
        
        client = GoogleCalendarClient()
        events = client.get_events("community-calendar", TIME_MIN, TIME_MAX)
        
        assert events[0].description == ""
        assert events[0].start.date == ""
        assert events[0].end.date == "2024-07-05"
        assert events[0].end.time_zone == ""
    
    @responses.activate
    def test_get_events_non_string_page_token(self):
        """Test that a non-string nextPageToken raises DecodeError."""
        responses.add(
            responses.GET, EVENTS_URL,
            json={"items": [], "nextPageToken": 2},
            status=200
        )
        
        client = GoogleCalendarClient()
        
        with pytest.raises(DecodeError):
            client.get_events("community-calendar", TIME_MIN, TIME_MAX)
