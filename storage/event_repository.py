"""Data access for event log records."""
import logging
from typing import List, Optional, Tuple

from processor.event_processor import EventProcessor
from processor.event_query import (
    DEFAULT_PAGE_SIZE,
    filter_events,
    paginate_events,
    sort_events_by_date,
    summarize_organizations,
    unique_formats,
)
from processor.models import Event, EventFilter, OrganizationSummary, PageResult
from source.row_source import RowSource
from storage.cache_store import CacheStore

logger = logging.getLogger(__name__)


class DataAccessError(Exception):
    """Raised when events cannot be read from the row source."""


class EventRepository:
    """Single entry point for reading events; owns the cache."""

    def __init__(
        self,
        row_source: RowSource,
        cache: Optional[CacheStore] = None,
        processor: Optional[EventProcessor] = None
    ):
        """
        Initialize the repository.

        Args:
            row_source: Supplier of raw sheet rows
            cache: Cache for the sorted event set (default: new CacheStore)
            processor: Row normalizer (default: new EventProcessor)
        """
        self.row_source = row_source
        self.cache = cache if cache is not None else CacheStore()
        self.processor = processor or EventProcessor()

    def get_all_events(self) -> List[Event]:
        """
        Return all events sorted by participation date, newest first.

        Served from the cache while it is fresh; otherwise the full sheet
        is fetched, normalized, sorted and cached.

        Raises:
            DataAccessError: If the row source fails
        """
        cached = self.cache.get()
        if cached is not None:
            logger.info("Cache hit: using cached sheet data")
            return list(cached)

        logger.info("Cache miss: fetching fresh sheet data")
        events = sort_events_by_date(self._fetch_raw_events())
        self.cache.put(events)
        return events

    def get_raw_events(self) -> List[Event]:
        """
        Return all events in sheet order, always fetched fresh.

        Raises:
            DataAccessError: If the row source fails
        """
        return self._fetch_raw_events()

    def get_event_by_index(self, index: int, single_row: bool = True) -> Optional[Event]:
        """
        Look up one event by its original index.

        Args:
            index: original_index of the event
            single_row: Request just that row from the source instead of
                scanning the full raw set

        Returns:
            Event, or None if the index is out of range or the row is empty

        Raises:
            DataAccessError: If the row source fails
        """
        if index < 0:
            return None

        if single_row:
            row = self._call_source(self.row_source.fetch_row, index)
            if row is None:
                return None
            event = self.processor.normalize_row(row, index)
        else:
            event = next(
                (e for e in self.get_raw_events() if e.original_index == index),
                None
            )

        if event is None or event.is_blank:
            logger.info(f"Event {index} not found")
            return None
        return event

    def list_events(
        self,
        event_filter: Optional[EventFilter] = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE
    ) -> Tuple[PageResult, List[str]]:
        """
        Filter and paginate the cached event set.

        Returns:
            Tuple of (page of events, unique formats across all events)
        """
        all_events = self.get_all_events()
        filtered = filter_events(all_events, event_filter)
        return paginate_events(filtered, page, page_size), unique_formats(all_events)

    def get_organizations(self) -> List[OrganizationSummary]:
        """Summarize event counts per organization from the cached set."""
        return summarize_organizations(self.get_all_events())

    def invalidate_cache(self) -> None:
        """Drop the cached event set so the next read refetches."""
        self.cache.invalidate()
        logger.info("Cache cleared manually")

    def _fetch_raw_events(self) -> List[Event]:
        rows = self._call_source(self.row_source.fetch_all_rows)
        return self.processor.normalize_rows(rows)

    def _call_source(self, fetch, *args):
        try:
            return fetch(*args)
        except Exception as e:
            logger.error(
                f"Error fetching sheet data: {e}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            raise DataAccessError(f"Failed to fetch sheet data: {e}") from e
