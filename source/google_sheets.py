"""Row sources backed by a Google Sheets spreadsheet."""
import csv
import io
import logging
import re
import time
from typing import List, Optional
from urllib.parse import quote

import requests
from bs4 import BeautifulSoup

from source.row_source import RowSource, RowSourceError, clean_row

logger = logging.getLogger(__name__)

# A1 notation: optional sheet name, then e.g. A:H, A2:H or B3:I200
A1_RANGE = re.compile(
    r"^(?:(?P<sheet>.+)!)?"
    r"(?P<start_col>[A-Za-z]+)(?P<start_row>\d*):(?P<end_col>[A-Za-z]+)(?P<end_row>\d*)$"
)


def _strip_trailing_blank_rows(rows: List[List[str]]) -> List[List[str]]:
    # Interior blank rows are kept so positions match sheet row numbers
    end = len(rows)
    while end > 0 and not any(cell.strip() for cell in rows[end - 1]):
        end -= 1
    return rows[:end]


class GoogleSheetsRowSource(RowSource):
    """Base class for HTTP access to a spreadsheet, with retry logic."""

    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(self, spreadsheet_id: str, timeout: int = 30):
        """
        Initialize the row source.

        Args:
            spreadsheet_id: Google spreadsheet ID
            timeout: HTTP request timeout in seconds (default: 30)
        """
        if not spreadsheet_id:
            raise ValueError("spreadsheet_id is required")
        self.spreadsheet_id = spreadsheet_id
        self.timeout = timeout

    def _get(self, url: str, params: Optional[dict] = None) -> requests.Response:
        """
        Issue a GET request with exponential backoff.

        Args:
            url: Request URL
            params: Query parameters

        Returns:
            Successful response

        Raises:
            RowSourceError: If all retry attempts fail
        """
        for attempt in range(self.MAX_RETRIES):
            try:
                logger.info(f"Fetching sheet data (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = requests.get(url, params=params, timeout=self.timeout)
                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise RowSourceError(f"Failed to fetch sheet data: {e}") from e


class GoogleSheetsApiRowSource(GoogleSheetsRowSource):
    """Reads rows through the Sheets API v4 values endpoint."""

    BASE_URL = "https://sheets.googleapis.com/v4/spreadsheets"

    def __init__(self, spreadsheet_id: str, api_key: str, sheet_range: str = 'A:H', timeout: int = 30):
        super().__init__(spreadsheet_id, timeout=timeout)
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.sheet_range = sheet_range

        match = A1_RANGE.match(sheet_range)
        if match is None:
            raise ValueError(f"Unsupported sheet_range: {sheet_range}")
        self._sheet = match.group("sheet")
        self._start_col = match.group("start_col").upper()
        self._end_col = match.group("end_col").upper()
        # First row of the range is the header
        self._header_row = int(match.group("start_row") or 1)
        self._end_row = int(match.group("end_row")) if match.group("end_row") else None

    def fetch_all_rows(self) -> List[List[str]]:
        values = self._fetch_values(self.sheet_range)
        # First row is the header
        rows = [clean_row(row) for row in values[1:]]
        logger.info(f"Fetched {len(rows)} rows from Sheets API")
        return rows

    def fetch_row(self, position: int) -> Optional[List[str]]:
        """
        Fetch a single row with a one-row range request.

        Data row 0 is the sheet row just below the header row of
        sheet_range (row 2 for the default A:H).
        """
        if position < 0:
            return None

        sheet_row = self._header_row + 1 + position
        if self._end_row is not None and sheet_row > self._end_row:
            return None

        values = self._fetch_values(self._row_range(sheet_row))
        if not values or not values[0]:
            return None
        return clean_row(values[0])

    def _row_range(self, sheet_row: int) -> str:
        prefix = f"{self._sheet}!" if self._sheet else ''
        return f"{prefix}{self._start_col}{sheet_row}:{self._end_col}{sheet_row}"

    def _fetch_values(self, sheet_range: str) -> list:
        url = f"{self.BASE_URL}/{self.spreadsheet_id}/values/{quote(sheet_range, safe='')}"
        response = self._get(url, params={'key': self.api_key})

        try:
            payload = response.json()
        except ValueError as e:
            raise RowSourceError(f"Malformed Sheets API response: {e}") from e

        if not isinstance(payload, dict):
            raise RowSourceError("Malformed Sheets API response: expected an object")

        values = payload.get('values') or []
        if not isinstance(values, list):
            raise RowSourceError("Malformed Sheets API response: 'values' is not a list")
        return values


class GoogleSheetsCsvRowSource(GoogleSheetsRowSource):
    """Reads rows from the spreadsheet's CSV export."""

    EXPORT_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/export"

    def fetch_all_rows(self) -> List[List[str]]:
        url = self.EXPORT_URL.format(spreadsheet_id=self.spreadsheet_id)
        response = self._get(url, params={'format': 'csv'})

        try:
            reader = csv.reader(io.StringIO(response.text))
            rows = [clean_row(row) for row in reader]
        except csv.Error as e:
            raise RowSourceError(f"Malformed CSV export: {e}") from e

        rows = _strip_trailing_blank_rows(rows[1:])
        logger.info(f"Fetched {len(rows)} rows from CSV export")
        return rows


class GoogleSheetsHtmlRowSource(GoogleSheetsRowSource):
    """Reads rows from the published HTML table of the spreadsheet."""

    HTML_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}/gviz/tq"

    def fetch_all_rows(self) -> List[List[str]]:
        url = self.HTML_URL.format(spreadsheet_id=self.spreadsheet_id)
        response = self._get(url, params={'tqx': 'out:html'})

        rows = self._parse_rows(response.text)
        logger.info(f"Fetched {len(rows)} rows from published HTML")
        return rows

    def _parse_rows(self, html_content: str) -> List[List[str]]:
        """
        Parse table rows from the published HTML.

        Args:
            html_content: HTML page containing the sheet table

        Returns:
            Data rows with the header row removed
        """
        soup = BeautifulSoup(html_content, 'html.parser')
        table = soup.find('table')
        if table is None:
            raise RowSourceError("Published sheet HTML contains no table")

        rows = []
        for tr in table.find_all('tr'):
            cells = tr.find_all(['td', 'th'])
            rows.append(clean_row(cell.get_text(strip=True) for cell in cells))

        return _strip_trailing_blank_rows(rows[1:])
