"""Data models for event log records."""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class Event:
    """Normalized record from one spreadsheet row."""
    timestamp: str
    participation_date: str
    title: str
    organization: str
    format: str
    story: str
    memorable_things: str
    final_mystery: str
    original_index: int

    @property
    def is_blank(self) -> bool:
        """True when every text field of the row is empty."""
        return not any((
            self.timestamp,
            self.participation_date,
            self.title,
            self.organization,
            self.format,
            self.story,
            self.memorable_things,
            self.final_mystery,
        ))

    def to_dict(self) -> dict:
        return {
            'timestamp': self.timestamp,
            'participationDate': self.participation_date,
            'title': self.title,
            'organization': self.organization,
            'format': self.format,
            'story': self.story,
            'memorableThings': self.memorable_things,
            'finalMystery': self.final_mystery,
            'originalIndex': self.original_index,
        }


@dataclass
class EventFilter:
    """Optional constraints; an empty value means no constraint."""
    format: Optional[str] = None
    organization: Optional[str] = None
    search_text: Optional[str] = None
    content_search: Optional[str] = None


@dataclass
class PageResult:
    """One page of a filtered event sequence."""
    events: List[Event]
    total_pages: int
    current_page: int
    total_items: int

    def to_dict(self) -> dict:
        return {
            'events': [event.to_dict() for event in self.events],
            'totalPages': self.total_pages,
            'currentPage': self.current_page,
            'totalItems': self.total_items,
        }


@dataclass
class OrganizationSummary:
    """Event counts for a single organization."""
    name: str
    total_events: int = 0
    format_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'totalEvents': self.total_events,
            'formatCounts': dict(self.format_counts),
        }
