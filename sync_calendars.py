"""Calendar sync entry point: Google Calendar sources into the events catalog."""
import calendar
import json
import logging
import os
import sys
import time
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fetcher.event_filter import fetch_filtered_events
from fetcher.google_calendar import GoogleCalendarClient
from processor.config_loader import load_config
from processor.errors import CalendarSyncError, SourceFetchError
from processor.event_normalizer import EventNormalizer
from processor.models import NormalizedEvent, SyncSummary
from storage.catalog_manager import CatalogManager

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = '../calendar-sources.json'
DEFAULT_EVENTS_PATH = '../events.json'
DEFAULT_OUTPUT_PATH = '../events-materialized.json'
RFC3339_UTC = '%Y-%m-%dT%H:%M:%SZ'


class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""
    
    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }
        
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)
        
        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.
    
    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)
    
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def compute_time_window(now: datetime) -> Tuple[str, str]:
    """
    Compute the fetch window around ``now``.
    
    The window starts on the first day of the month twelve months back and
    ends on the last second of the month twelve months ahead, in UTC.
    
    Returns:
        Tuple of (time_min, time_max) as RFC3339 UTC strings
    """
    start_year, start_month = _shift_month(now.year, now.month, -12)
    end_year, end_month = _shift_month(now.year, now.month, 12)
    last_day = calendar.monthrange(end_year, end_month)[1]
    
    time_min = datetime(start_year, start_month, 1, tzinfo=timezone.utc)
    time_max = datetime(end_year, end_month, last_day, 23, 59, 59, tzinfo=timezone.utc)
    return time_min.strftime(RFC3339_UTC), time_max.strftime(RFC3339_UTC)


def _shift_month(year: int, month: int, delta: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def run_sync(config_path: str, events_path: str, output_path: str,
             api_key: str = '', timeout: int = 30,
             now: Optional[datetime] = None) -> SyncSummary:
    """
    Fetch, filter and normalize events from every source, then write the catalog.
    
    A source that fails to fetch is logged and skipped. Configuration and
    catalog write failures propagate.
    
    Args:
        config_path: Calendar sources configuration file
        events_path: Base catalog file
        output_path: Catalog file to write
        api_key: Google API key (may be empty)
        timeout: Per-request timeout in seconds
        now: Reference time for the fetch window (default: current UTC time)
        
    Returns:
        SyncSummary with per-run statistics
        
    Raises:
        ConfigLoadError: If the sources configuration cannot be loaded
        CatalogIOError, DecodeError, EncodeError: If the merge step fails
    """
    config = load_config(config_path)
    
    time_min, time_max = compute_time_window(now or datetime.now(timezone.utc))
    logger.info(f"Fetching events from {time_min[:10]} to {time_max[:10]}")
    
    if not api_key:
        logger.warning(
            "GOOGLE_CALENDAR_API_KEY not set. Public calendar access may be limited."
        )
    
    client = GoogleCalendarClient(api_key=api_key, timeout=timeout)
    normalizer = EventNormalizer()
    summary = SyncSummary()
    all_events: List[NormalizedEvent] = []
    
    for source in config.sources:
        logger.info(
            f"Fetching events from: {source.name} ({source.calendar_id})",
            extra={'source': source.name, 'calendar_id': source.calendar_id}
        )
        
        try:
            events = fetch_filtered_events(client, source, time_min, time_max)
        except SourceFetchError as e:
            logger.warning(f"Error fetching events from {source.name}: {e}")
            summary.sources_failed += 1
            summary.errors.append(str(e))
            continue
        
        normalized = normalizer.normalize_events(events, source)
        skipped = len(events) - len(normalized)
        if skipped:
            summary.errors.append(
                f"{source.name}: skipped {skipped} event(s) that failed to normalize"
            )
        
        summary.sources_processed += 1
        summary.events_fetched += len(events)
        summary.events_normalized += len(normalized)
        all_events.extend(normalized)
    
    logger.info(f"Total normalized events: {len(all_events)}")
    
    logger.info(f"Merging with {events_path}...")
    summary.events_written = CatalogManager().merge_and_write(
        events_path, all_events, output_path
    )
    return summary


def main() -> int:
    """
    Run a sync with settings from the environment.
    
    Returns:
        Process exit code (0 on success, 1 on a fatal error)
    """
    config_path = os.environ.get('CALENDAR_SOURCES') or DEFAULT_CONFIG_PATH
    events_path = os.environ.get('EVENTS_JSON') or DEFAULT_EVENTS_PATH
    output_path = os.environ.get('OUTPUT_JSON') or DEFAULT_OUTPUT_PATH
    api_key = os.environ.get('GOOGLE_CALENDAR_API_KEY', '')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    
    setup_logging(log_level)
    
    start_time = time.time()
    logger.info(
        "Starting calendar sync...",
        extra={
            'config_path': config_path,
            'events_path': events_path,
            'output_path': output_path
        }
    )
    
    try:
        summary = run_sync(
            config_path,
            events_path,
            output_path,
            api_key=api_key,
            timeout=timeout_seconds
        )
    except CalendarSyncError as e:
        logger.error(
            f"Calendar sync failed: {e}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return 1
    
    logger.info(
        f"Successfully created {output_path}",
        extra={
            'duration_seconds': round(time.time() - start_time, 2),
            'sources_processed': summary.sources_processed,
            'sources_failed': summary.sources_failed,
            'events_normalized': summary.events_normalized,
            'events_written': summary.events_written,
            'errors': summary.errors
        }
    )
    print("Calendar sync completed successfully!")
    return 0


if __name__ == '__main__':
    sys.exit(main())
