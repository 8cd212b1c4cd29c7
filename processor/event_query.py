"""Sorting, filtering and pagination over event sequences."""
import math
from typing import Iterable, List, Optional

from processor.event_processor import parse_participation_date
from processor.models import Event, EventFilter, OrganizationSummary, PageResult

DEFAULT_PAGE_SIZE = 30


def _date_sort_key(event: Event):
    parsed = parse_participation_date(event.participation_date)
    if parsed is None:
        # Invalid dates go last and keep their relative order
        return (1, 0)
    return (0, -parsed.toordinal())


def sort_events_by_date(events: Iterable[Event]) -> List[Event]:
    """
    Sort events by participation date, most recent first.

    Events whose date cannot be parsed are placed after all dated events.
    The sort is stable, so ties keep their input order.

    Args:
        events: Events in any order

    Returns:
        New sorted list
    """
    return sorted(events, key=_date_sort_key)


def _contains(needle: str, *haystacks: str) -> bool:
    return any(needle in haystack.lower() for haystack in haystacks)


def filter_events(events: Iterable[Event], event_filter: Optional[EventFilter] = None) -> List[Event]:
    """
    Apply every set constraint of the filter (logical AND).

    format and organization are exact, case-sensitive matches; search_text
    and content_search are case-insensitive substring matches.

    Args:
        events: Events, normally already sorted by date
        event_filter: Constraints to apply

    Returns:
        Matching events in descending date order
    """
    filtered = list(events)
    if event_filter is None:
        return sort_events_by_date(filtered)

    if event_filter.format:
        filtered = [e for e in filtered if e.format == event_filter.format]

    if event_filter.organization:
        filtered = [e for e in filtered if e.organization == event_filter.organization]

    if event_filter.search_text:
        needle = event_filter.search_text.lower()
        filtered = [e for e in filtered if _contains(needle, e.title, e.organization)]

    if event_filter.content_search:
        needle = event_filter.content_search.lower()
        filtered = [
            e for e in filtered
            if _contains(needle, e.story, e.memorable_things, e.final_mystery)
        ]

    return sort_events_by_date(filtered)


def paginate_events(events: List[Event], page: int = 1, page_size: int = DEFAULT_PAGE_SIZE) -> PageResult:
    """
    Slice one 1-based page out of an event list.

    Pages outside the available range yield an empty event list.

    Raises:
        ValueError: If page_size is less than 1
    """
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    total_items = len(events)
    if page < 1:
        page_events = []
    else:
        start_index = (page - 1) * page_size
        page_events = events[start_index:start_index + page_size]

    return PageResult(
        events=list(page_events),
        total_pages=math.ceil(total_items / page_size),
        current_page=page,
        total_items=total_items
    )


def unique_formats(events: Iterable[Event]) -> List[str]:
    """Distinct non-empty formats in first-seen order."""
    return list(dict.fromkeys(e.format for e in events if e.format))


def summarize_organizations(events: Iterable[Event]) -> List[OrganizationSummary]:
    """
    Count events per organization and per format within it.

    Organizations are grouped by their exact (stripped) field value;
    rows without an organization are skipped.
    """
    summaries = {}

    for event in events:
        name = event.organization.strip()
        if not name:
            continue

        summary = summaries.setdefault(name, OrganizationSummary(name=name))
        summary.total_events += 1

        event_format = event.format.strip()
        if event_format:
            summary.format_counts[event_format] = summary.format_counts.get(event_format, 0) + 1

    return list(summaries.values())
