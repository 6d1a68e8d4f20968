"""
Session Continuity Store

Session aggregates live in two keys per session token:

- ``session:<token>``: a hash with first-write-wins identity fields
  (start time, initial referrer, UTM parameters) and summed counters
  (page count, visibility changes).
- ``session:<token>:peaks``: a sorted set whose scores are running maxima
  (duration, scroll depth, last-seen time), written with ``ZADD GT``.

Both are written inside one MULTI/EXEC pipeline, so out-of-order or
concurrent beacons can only move aggregates forward.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from .fail_open import fail_open
from .models.records import SessionDelta, SessionRecord
from .redis_client import KeyBuilder

logger = logging.getLogger(__name__)

SESSION_KEY = "session:{token}"
SESSION_PEAKS_KEY = "session:{token}:peaks"
DEFAULT_SESSION_TTL_SECONDS = 86400

UTM_FIELDS = ("utm_source", "utm_medium", "utm_campaign", "utm_content", "utm_term")


class SessionStore:
    """Monotonic session aggregates keyed by client session token."""

    def __init__(
        self,
        client,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        key_builder: Optional[KeyBuilder] = None,
        clock=None,
    ):
        """
        Args:
            client: redis-compatible client
            ttl_seconds: Inactivity TTL, refreshed on every write
            key_builder: Optional key namespacing
            clock: Callable returning an aware UTC datetime (for tests)
        """
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.key = key_builder or KeyBuilder()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _keys(self, token: str) -> Tuple[str, str]:
        return (
            self.key(SESSION_KEY.format(token=token)),
            self.key(SESSION_PEAKS_KEY.format(token=token)),
        )

    def _queue_identity(self, pipe, hash_key: str, token: str, now: datetime,
                        referrer: Optional[str], utm: Optional[Dict[str, Optional[str]]]) -> None:
        """Queue first-write-wins fields. The start_time result tells creation."""
        pipe.hsetnx(hash_key, "start_time", now.isoformat())
        pipe.hsetnx(hash_key, "session_id", token)
        pipe.hsetnx(hash_key, "initial_referrer", referrer or "")
        for name in UTM_FIELDS:
            pipe.hsetnx(hash_key, name, (utm or {}).get(name) or "")

    def _queue_tail(self, pipe, hash_key: str, peaks_key: str, now: datetime) -> None:
        pipe.zadd(peaks_key, {"last_seen": now.timestamp()}, gt=True)
        pipe.expire(hash_key, self.ttl_seconds)
        pipe.expire(peaks_key, self.ttl_seconds)
        pipe.hgetall(hash_key)
        pipe.zrange(peaks_key, 0, -1, withscores=True)

    @fail_open(default=None, operation="session.get_or_create")
    def get_or_create(
        self,
        token: str,
        referrer: Optional[str] = None,
        utm: Optional[Dict[str, Optional[str]]] = None,
    ) -> Optional[SessionRecord]:
        """Return the session for ``token``, creating it if absent.

        Referrer and UTM values are only recorded for a new session.
        Returns None when the backend is unavailable.
        """
        hash_key, peaks_key = self._keys(token)
        now = self._clock()

        pipe = self.client.pipeline(transaction=True)
        self._queue_identity(pipe, hash_key, token, now, referrer, utm)
        self._queue_tail(pipe, hash_key, peaks_key, now)
        results = pipe.execute()

        record = self._build_record(token, results[-2], results[-1])
        record.created = bool(results[0])
        if record.created:
            logger.debug(f"Started session {token[:8]}...")
        return record

    @fail_open(default=None, operation="session.update")
    def update(self, token: str, delta: SessionDelta) -> Optional[SessionRecord]:
        """Apply ``delta`` to the session, creating it if absent.

        Counters are summed, duration / scroll depth / last-seen keep their
        maximum. Returns None when the backend is unavailable.
        """
        hash_key, peaks_key = self._keys(token)
        now = self._clock()

        pipe = self.client.pipeline(transaction=True)
        self._queue_identity(pipe, hash_key, token, now, None, None)
        if delta.page_views > 0:
            pipe.hincrby(hash_key, "page_count", delta.page_views)
        if delta.visibility_changes > 0:
            pipe.hincrby(hash_key, "visibility_changes", delta.visibility_changes)
        peaks = {}
        if delta.duration_seconds is not None:
            peaks["duration_seconds"] = max(0, delta.duration_seconds)
        if delta.scrolled_percentage is not None:
            peaks["scrolled_percentage"] = max(0, min(100, delta.scrolled_percentage))
        if peaks:
            pipe.zadd(peaks_key, peaks, gt=True)
        self._queue_tail(pipe, hash_key, peaks_key, now)
        results = pipe.execute()

        record = self._build_record(token, results[-2], results[-1])
        record.created = bool(results[0])
        return record

    def _build_record(self, token: str, fields: Dict[str, str],
                      peaks: List[Tuple[str, float]]) -> SessionRecord:
        peak_map = {member: score for member, score in peaks}
        last_seen = peak_map.get("last_seen")

        return SessionRecord(
            session_id=fields.get("session_id") or token,
            start_time=fields.get("start_time"),
            last_seen=(
                datetime.fromtimestamp(last_seen, tz=timezone.utc).isoformat()
                if last_seen is not None else None
            ),
            page_count=int(fields.get("page_count", 0)),
            initial_referrer=fields.get("initial_referrer") or None,
            utm_params={name: fields.get(name) or None for name in UTM_FIELDS},
            duration_seconds=int(peak_map.get("duration_seconds", 0)),
            max_scrolled_percentage=int(peak_map.get("scrolled_percentage", 0)),
            visibility_changes=int(fields.get("visibility_changes", 0)),
        )
