"""Row source contract for the remote event sheet."""
from typing import List, Optional


# Columns A:H
ROW_WIDTH = 8


class RowSourceError(Exception):
    """Raised when rows cannot be fetched or parsed from the remote sheet."""


class RowSource:
    """Supplier of raw data rows, header excluded."""

    def fetch_all_rows(self) -> List[List[str]]:
        """
        Fetch every data row in sheet order.

        Returns:
            List of rows, each an ordered list of at most 8 cell strings

        Raises:
            RowSourceError: If the remote sheet is unavailable or malformed
        """
        raise NotImplementedError

    def fetch_row(self, position: int) -> Optional[List[str]]:
        """
        Fetch one data row by zero-based position.

        The default implementation fetches all rows and indexes into them.

        Args:
            position: Zero-based data row position (0 is the first row
                after the header)

        Returns:
            Row cells, or None if position is out of range

        Raises:
            RowSourceError: If the remote sheet is unavailable or malformed
        """
        if position < 0:
            return None

        rows = self.fetch_all_rows()
        if position >= len(rows):
            return None
        return rows[position]


def clean_row(row) -> List[str]:
    """Coerce a row to at most ROW_WIDTH string cells."""
    return ['' if cell is None else str(cell) for cell in list(row)[:ROW_WIDTH]]
