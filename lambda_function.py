"""AWS Lambda handler for the event log API."""
import json
import logging
import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from processor.event_query import DEFAULT_PAGE_SIZE
from processor.models import EventFilter
from source.google_sheets import (
    GoogleSheetsApiRowSource,
    GoogleSheetsCsvRowSource,
    GoogleSheetsHtmlRowSource,
)
from storage.cache_store import CacheStore
from storage.event_repository import DataAccessError, EventRepository

EVENT_PATH = re.compile(r'^/events/(?P<event_id>[^/]+)/?$')

# Reused across warm invocations of the same container
_repository: Optional[EventRepository] = None


# Configure JSON logging
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

        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_repository() -> EventRepository:
    """
    Build the event repository from environment variables.

    Raises:
        ValueError: If the configuration is incomplete or unknown
    """
    source_type = os.environ.get('ROW_SOURCE', 'api').lower()
    sheet_id = os.environ.get('GOOGLE_SHEET_ID', '')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))
    ttl_seconds = int(os.environ.get('CACHE_TTL_SECONDS', '300'))

    if not sheet_id:
        raise ValueError("GOOGLE_SHEET_ID environment variable is not set")

    if source_type == 'api':
        api_key = os.environ.get('GOOGLE_SHEETS_API_KEY', '')
        if not api_key:
            raise ValueError("GOOGLE_SHEETS_API_KEY environment variable is not set")
        row_source = GoogleSheetsApiRowSource(
            spreadsheet_id=sheet_id,
            api_key=api_key,
            sheet_range=os.environ.get('SHEET_RANGE', 'A:H'),
            timeout=timeout_seconds
        )
    elif source_type == 'csv':
        row_source = GoogleSheetsCsvRowSource(sheet_id, timeout=timeout_seconds)
    elif source_type == 'html':
        row_source = GoogleSheetsHtmlRowSource(sheet_id, timeout=timeout_seconds)
    else:
        raise ValueError(f"Unknown ROW_SOURCE: {source_type}")

    return EventRepository(row_source, cache=CacheStore(ttl_seconds=ttl_seconds))


def get_repository() -> EventRepository:
    global _repository
    if _repository is None:
        _repository = build_repository()
    return _repository


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json; charset=utf-8'},
        'body': json.dumps(body, ensure_ascii=False)
    }


def _is_authenticated(event: Dict[str, Any]) -> bool:
    """Check the opaque session flag set by the login flow."""
    raw_cookies = list(event.get('cookies') or [])
    headers = {k.lower(): v for k, v in (event.get('headers') or {}).items()}
    if headers.get('cookie'):
        raw_cookies.append(headers['cookie'])

    # Split by hand; one unparseable cookie must not hide the others
    for raw in raw_cookies:
        for pair in raw.split(';'):
            name, sep, value = pair.partition('=')
            if sep and name.strip() == 'authenticated' and value.strip().strip('"') == 'true':
                return True
    return False


def _list_events(repository: EventRepository, params: Dict[str, str]) -> Dict[str, Any]:
    try:
        page = int(params.get('page') or '1')
    except ValueError:
        return _response(400, {'error': 'Invalid page number'})

    event_filter = EventFilter(
        format=params.get('format') or None,
        organization=params.get('organization') or None,
        search_text=params.get('searchText') or None,
        content_search=params.get('contentSearch') or None
    )
    page_size = int(os.environ.get('PAGE_SIZE', str(DEFAULT_PAGE_SIZE)))

    page_result, formats = repository.list_events(event_filter, page, page_size)
    body = page_result.to_dict()
    body['uniqueFormats'] = formats
    return _response(200, body)


def _get_event(repository: EventRepository, event_id: str) -> Dict[str, Any]:
    try:
        index = int(event_id)
    except ValueError:
        return _response(400, {'error': 'Invalid event ID'})

    single_row = os.environ.get('EVENT_LOOKUP', 'row').lower() != 'scan'
    found = repository.get_event_by_index(index, single_row=single_row)
    if found is None:
        return _response(404, {'error': 'Event not found'})
    return _response(200, found.to_dict())


def _clear_cache(repository: EventRepository) -> Dict[str, Any]:
    repository.invalidate_cache()
    return _response(200, {
        'message': 'Cache cleared successfully',
        'timestamp': datetime.now(timezone.utc).isoformat()
    })


def _route(event: Dict[str, Any]) -> Dict[str, Any]:
    request_context = event.get('requestContext') or {}
    method = (
        event.get('httpMethod')
        or request_context.get('http', {}).get('method')
        or 'GET'
    ).upper()
    path = event.get('rawPath') or event.get('path') or '/'
    params = event.get('queryStringParameters') or {}

    if not _is_authenticated(event):
        return _response(401, {'error': 'Authentication required'})

    repository = get_repository()

    if method == 'GET' and path.rstrip('/') == '/events':
        return _list_events(repository, params)

    match = EVENT_PATH.match(path)
    if method == 'GET' and match:
        return _get_event(repository, match.group('event_id'))

    if method == 'GET' and path.rstrip('/') == '/organizations':
        summaries = repository.get_organizations()
        return _response(200, [summary.to_dict() for summary in summaries])

    if method == 'POST' and path.rstrip('/') == '/cache/clear':
        return _clear_cache(repository)

    return _response(404, {'error': 'Not found'})


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for API Gateway proxy requests.

    Args:
        event: API Gateway proxy event (payload format 1.0 or 2.0)
        context: Lambda context object

    Returns:
        Proxy response dict with statusCode, headers and JSON body
    """
    setup_logging(os.environ.get('LOG_LEVEL', 'INFO'))
    logger = logging.getLogger(__name__)

    try:
        return _route(event)

    except DataAccessError as e:
        logger.error(
            f"Failed to read events: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Failed to fetch event data',
            'error': str(e),
            'error_type': type(e).__name__
        })

    except Exception as e:
        logger.error(
            f"Request failed: {str(e)}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Request failed',
            'error': str(e),
            'error_type': type(e).__name__
        })
