"""
Event Tracker

Persists validated custom events. The client IP is only used for the
country lookup and is not stored.
"""

import logging

from ingest_service.models import ClientContext, EventPayload, EventRecord

logger = logging.getLogger(__name__)


class EventTracker:
    """Main event tracking system."""

    def __init__(self, geoip, writer):
        """Initialize the event tracker.

        Args:
            geoip: ``GeoIPResolver``
            writer: ``PersistenceWriter``
        """
        self.geoip = geoip
        self.writer = writer

    def build_record(self, payload: EventPayload, client: ClientContext) -> EventRecord:
        """Derive the row to insert from a payload and its request context."""
        return EventRecord(
            event_name=payload.event_name,
            event_metadata=payload.event_metadata,
            page_id=payload.page_id,
            session_id=payload.session_id,
            path=payload.path.replace("\x00", ""),
            timestamp=payload.timestamp,
            country_code=self.geoip.lookup_country_code(client.ip),
        )

    def track_event(self, payload: EventPayload, client: ClientContext) -> EventRecord:
        """Persist one custom event.

        Raises:
            PersistenceError: The durable store did not accept the row
        """
        record = self.build_record(payload, client)
        self.writer.write_event(record)
        logger.debug(f"Recorded event {record.event_name} for session {record.session_id[:8]}...")
        return record
