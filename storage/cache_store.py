"""In-memory cache for the sorted event set."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

from processor.models import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Snapshot of events and the instant they were fetched."""
    records: Tuple[Event, ...]
    fetched_at: float


class CacheStore:
    """Single-entry cache with a freshness window."""

    DEFAULT_TTL_SECONDS = 5 * 60

    def __init__(self, ttl_seconds: float = DEFAULT_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        """
        Initialize an empty cache.

        Args:
            ttl_seconds: How long an entry is served after it is stored
            clock: Source of the current instant in seconds
        """
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[Tuple[Event, ...]]:
        """
        Return the cached events if the entry is still fresh.

        An expired entry is cleared and None is returned.
        """
        with self._lock:
            entry = self._entry
            if entry is None:
                return None

            if self._clock() - entry.fetched_at >= self.ttl_seconds:
                self._entry = None
                logger.info("Cache entry expired")
                return None

            return entry.records

    def put(self, records: Sequence[Event]) -> None:
        """Replace the cached entry with a snapshot of records."""
        entry = CacheEntry(records=tuple(records), fetched_at=self._clock())
        with self._lock:
            self._entry = entry
        logger.info(f"Cached {len(entry.records)} events")

    def invalidate(self) -> None:
        """Clear the cached entry; safe to call when already empty."""
        with self._lock:
            self._entry = None
        logger.info("Cache cleared")


class NullCacheStore(CacheStore):
    """Cache that never holds anything."""

    def __init__(self):
        super().__init__(ttl_seconds=0)

    def get(self) -> Optional[Tuple[Event, ...]]:
        return None

    def put(self, records: Sequence[Event]) -> None:
        pass
