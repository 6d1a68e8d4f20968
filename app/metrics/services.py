"""
Ingestion Pipeline

Turns one validated pageview into one persisted row:

    bot filter -> visitor hash -> dedup -> GeoIP -> user-agent parsing
    -> session continuity -> referrer -> single-transaction write
    -> active-visitor mark

Every derived value is computed before the write opens its transaction. Cache
steps fail open; only the durable store and the hasher can fail the request.
"""

import logging
from typing import Optional

from ingest_service.bot_filter import is_bot
from ingest_service.errors import DuplicatePageviewError
from ingest_service.models import (
    AppendPayload,
    ClientContext,
    PageviewPayload,
    PageviewRecord,
    SessionDelta,
    SessionRecord,
)
from ingest_service.referrer import classify_referrer
from ingest_service.user_agent import extract_major_version, parse_user_agent
from ingest_service.visitor_hash import generate_visitor_hash, utc_day

from .models import PipelineOutcome

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Runs the per-pageview ingestion stages against injected collaborators."""

    def __init__(self, dedup_cache, session_store, active_visitors, geoip, writer):
        """
        Args:
            dedup_cache: ``DedupCache``
            session_store: ``SessionStore``
            active_visitors: ``ActiveVisitors``
            geoip: ``GeoIPResolver``
            writer: ``PersistenceWriter``
        """
        self.dedup_cache = dedup_cache
        self.session_store = session_store
        self.active_visitors = active_visitors
        self.geoip = geoip
        self.writer = writer

    def process(self, payload: PageviewPayload, client: ClientContext) -> PipelineOutcome:
        """Ingest one pageview.

        Raises:
            VisitorHashError: The hasher rejected its inputs (server fault)
            PersistenceError: The durable store did not accept the row
        """
        bot = is_bot(client.user_agent)

        # Hash day is the server's receive date, never the client clock
        visitor_hash = generate_visitor_hash(client.ip, client.user_agent, utc_day(client.received_at))

        if bot:
            is_unique = False
        else:
            is_unique = self.dedup_cache.check_and_record(visitor_hash)

        country_code = self.geoip.lookup_country_code(client.ip)
        parsed_ua = parse_user_agent(client.user_agent)

        session = None
        if payload.session_id and not bot:
            session = self._track_session(payload)

        referrer_domain, referrer_category = classify_referrer(payload.document_referrer)

        record = PageviewRecord(
            page_id=payload.page_id,
            added_iso=payload.added_iso,
            session_id=payload.session_id,
            hostname=payload.hostname,
            path=payload.path.replace("\x00", ""),
            hash=payload.hash,
            query_string=payload.query_string,
            document_title=payload.document_title,
            document_referrer=payload.document_referrer,
            referrer_domain=referrer_domain,
            referrer_category=referrer_category,
            is_unique=is_unique,
            is_bot=bot,
            is_internal_referrer=payload.is_internal_referrer,
            device_type=payload.device_type,
            browser_name=parsed_ua.browser_name,
            browser_version=parsed_ua.browser_version,
            browser_major_version=extract_major_version(parsed_ua.browser_version),
            os_name=parsed_ua.os_name,
            os_version=parsed_ua.os_version,
            viewport_width=payload.viewport_width,
            viewport_height=payload.viewport_height,
            screen_width=payload.screen_width,
            screen_height=payload.screen_height,
            language=payload.language,
            timezone=payload.timezone,
            user_agent=client.user_agent,
            country_code=country_code,
            utm_source=payload.utm_source,
            utm_medium=payload.utm_medium,
            utm_campaign=payload.utm_campaign,
            utm_content=payload.utm_content,
            utm_term=payload.utm_term,
            duration_seconds=payload.duration_seconds,
            time_on_page_seconds=payload.time_on_page_seconds,
            scrolled_percentage=payload.scrolled_percentage,
            visibility_changes=payload.visibility_changes,
        )

        outcome = PipelineOutcome(
            page_id=payload.page_id,
            visitor_hash=visitor_hash,
            is_unique=is_unique,
            is_bot=bot,
            country_code=country_code,
            referrer_category=referrer_category,
            session=session,
        )

        try:
            self.writer.write_pageview(record)
        except DuplicatePageviewError:
            # Redelivery of a page_id already stored: acknowledge, keep one row
            logger.info(f"Pageview {payload.page_id} already recorded, ignoring redelivery")
            outcome.duplicate = True
            return outcome

        if not bot and payload.session_id:
            self.active_visitors.mark_active(payload.session_id)

        logger.debug(
            f"Recorded pageview {payload.page_id} path={record.path} "
            f"visitor={visitor_hash[:12]}... unique={is_unique} bot={bot}"
        )
        return outcome

    def _track_session(self, payload: PageviewPayload) -> Optional[SessionRecord]:
        session = self.session_store.get_or_create(
            payload.session_id,
            payload.document_referrer,
            payload.utm_params(),
        )
        delta = SessionDelta(
            page_views=1,
            duration_seconds=payload.duration_seconds,
            scrolled_percentage=payload.scrolled_percentage,
            visibility_changes=payload.visibility_changes,
        )
        updated = self.session_store.update(payload.session_id, delta)
        return updated or session

    def append(self, payload: AppendPayload, client: ClientContext) -> Optional[SessionRecord]:
        """Apply an engagement update to the session, never to the stored row.

        Returns the updated session, or None when there is no session to
        update or the cache is unavailable.
        """
        if not payload.session_id or is_bot(client.user_agent):
            return None

        delta = SessionDelta(
            page_views=0,
            duration_seconds=payload.duration_seconds,
            scrolled_percentage=payload.scrolled_percentage,
            visibility_changes=payload.visibility_changes,
        )
        session = self.session_store.update(payload.session_id, delta)
        self.active_visitors.mark_active(payload.session_id)
        return session
