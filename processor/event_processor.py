"""Event processor for normalizing spreadsheet rows into events."""
import logging
from datetime import date, datetime
from typing import List, Optional, Sequence

from processor.models import Event

logger = logging.getLogger(__name__)

# Column order of the sheet (A:H)
COLUMNS = (
    'timestamp',
    'participation_date',
    'title',
    'organization',
    'format',
    'story',
    'memorable_things',
    'final_mystery',
)

DATE_FORMATS = (
    '%Y-%m-%d',           # ISO 8601
    '%Y/%m/%d',           # Google Forms date
    '%m/%d/%Y',           # US format
    '%m-%d-%Y',           # US format with dashes
    '%B %d, %Y',          # Full month name
    '%b %d, %Y',          # Abbreviated month name
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%dT%H:%M:%S.%fZ',  # JavaScript toISOString
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S.%f%z',
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d %H:%M:%S',
    '%Y年%m月%d日',
)


def parse_participation_date(date_str: Optional[str]) -> Optional[date]:
    """
    Parse a participation date for sorting.

    Args:
        date_str: Date string as entered in the sheet

    Returns:
        Calendar date, or None if the text matches no known format
    """
    if not date_str or not date_str.strip():
        return None

    text = date_str.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


class EventProcessor:
    """Maps raw sheet rows to Event records."""

    def normalize_row(self, row: Sequence[Optional[str]], raw_index: int) -> Event:
        """
        Normalize a single raw row.

        Short rows are padded with empty strings; cell content is passed
        through unchanged.

        Args:
            row: Ordered cell values (at most 8 are used)
            raw_index: Zero-based position of the row in the raw,
                unsorted source output

        Returns:
            Event whose original_index is raw_index
        """
        cells = [cell if cell is not None else '' for cell in list(row)[:len(COLUMNS)]]
        cells.extend([''] * (len(COLUMNS) - len(cells)))

        values = dict(zip(COLUMNS, (str(cell) for cell in cells)))
        return Event(original_index=raw_index, **values)

    def normalize_rows(self, rows: Sequence[Sequence[Optional[str]]]) -> List[Event]:
        """
        Normalize rows in raw source order.

        Args:
            rows: Data rows exactly as returned by the row source

        Returns:
            List of Event objects, original_index set from row position
        """
        events = [
            self.normalize_row(row, raw_index)
            for raw_index, row in enumerate(rows)
        ]
        logger.debug(f"Normalized {len(events)} rows")
        return events
