"""
Internal records passed between pipeline stages.

These are plain dataclasses: they are built by the server, never parsed from
client input, so they carry no validation of their own.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ClientContext:
    """Request-derived facts about the client. Never persisted as-is."""

    ip: str
    user_agent: str
    received_at: datetime


@dataclass
class SessionDelta:
    """Engagement observed by one beacon, applied monotonically to a session."""

    page_views: int = 0
    duration_seconds: Optional[int] = None
    scrolled_percentage: Optional[int] = None
    visibility_changes: int = 0


@dataclass
class SessionRecord:
    """Session-scoped aggregates kept by the session continuity store."""

    session_id: str
    start_time: Optional[str] = None
    last_seen: Optional[str] = None
    page_count: int = 0
    initial_referrer: Optional[str] = None
    utm_params: Dict[str, Optional[str]] = field(default_factory=dict)
    duration_seconds: int = 0
    max_scrolled_percentage: int = 0
    visibility_changes: int = 0
    created: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data.pop("created")
        return data


@dataclass
class PageviewRecord:
    """Fully derived pageview row, ready for a single insert."""

    page_id: str
    added_iso: datetime
    path: str
    device_type: str
    user_agent: str
    is_internal_referrer: bool
    is_unique: bool
    is_bot: bool
    duration_seconds: int
    visibility_changes: int
    referrer_category: str
    session_id: Optional[str] = None
    hostname: Optional[str] = None
    hash: Optional[str] = None
    query_string: Optional[str] = None
    document_title: Optional[str] = None
    document_referrer: Optional[str] = None
    referrer_domain: Optional[str] = None
    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    browser_major_version: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    viewport_width: Optional[int] = None
    viewport_height: Optional[int] = None
    screen_width: Optional[int] = None
    screen_height: Optional[int] = None
    language: Optional[str] = None
    timezone: Optional[str] = None
    country_code: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_content: Optional[str] = None
    utm_term: Optional[str] = None
    time_on_page_seconds: Optional[int] = None
    scrolled_percentage: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EventRecord:
    """Custom event row, ready for a single insert."""

    event_name: str
    session_id: str
    path: str
    timestamp: datetime
    event_metadata: Optional[Dict[str, Any]] = None
    page_id: Optional[str] = None
    country_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
