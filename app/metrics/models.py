"""
Data Models for the Metrics Endpoint
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, Optional

from ingest_service.models import SessionRecord

DROP_REASONS = ("missing_data", "bad_base64", "bad_json", "invalid_payload", "pipeline_error")


@dataclass
class PipelineOutcome:
    """What the ingestion pipeline decided for one pageview."""

    page_id: str
    visitor_hash: str
    is_unique: bool
    is_bot: bool
    country_code: Optional[str] = None
    referrer_category: str = "Direct"
    session: Optional[SessionRecord] = None
    duplicate: bool = False


@dataclass
class TransportStats:
    """Thread-safe counters for requests dropped or rejected per transport.

    The GET transport never reveals a failure to the client, so these counts
    are the only place such drops become visible.
    """

    accepted: Dict[str, int] = field(default_factory=lambda: {"get": 0, "post": 0})
    dropped: Dict[str, Dict[str, int]] = field(
        default_factory=lambda: {
            "get": {reason: 0 for reason in DROP_REASONS},
            "post": {reason: 0 for reason in DROP_REASONS},
        }
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_accepted(self, transport: str) -> None:
        with self._lock:
            self.accepted[transport] = self.accepted.get(transport, 0) + 1

    def record_drop(self, transport: str, reason: str) -> None:
        with self._lock:
            counters = self.dropped.setdefault(transport, {})
            counters[reason] = counters.get(reason, 0) + 1

    def snapshot(self) -> Dict[str, Dict]:
        """Copy of the counters, safe to serialize."""
        with self._lock:
            return {
                "accepted": dict(self.accepted),
                "dropped": {transport: dict(counts) for transport, counts in self.dropped.items()},
            }
