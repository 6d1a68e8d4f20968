"""
Tests for the session continuity store.
"""

from datetime import datetime, timedelta, timezone

import pytest

from ingest_service.models import SessionDelta
from ingest_service.session_store import SessionStore

TOKEN = "session-abc-123"


class TestSessionStore:
    """Test session creation and monotonic updates."""

    @pytest.fixture
    def clock(self):
        state = {"now": datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)}

        def now():
            return state["now"]

        now.state = state
        return now

    @pytest.fixture
    def store(self, fake_redis, clock):
        return SessionStore(fake_redis, clock=clock)

    def test_get_or_create_new_session(self, store):
        session = store.get_or_create(TOKEN, "https://www.google.com/", {"utm_source": "newsletter"})
        assert session.created is True
        assert session.session_id == TOKEN
        assert session.page_count == 0
        assert session.initial_referrer == "https://www.google.com/"
        assert session.utm_params["utm_source"] == "newsletter"
        assert session.utm_params["utm_medium"] is None
        assert session.start_time == "2025-01-15T10:00:00+00:00"

    def test_identity_fields_are_first_write_wins(self, store):
        store.get_or_create(TOKEN, "https://www.google.com/", {"utm_source": "newsletter"})
        again = store.get_or_create(TOKEN, "https://twitter.com/", {"utm_source": "social"})
        assert again.created is False
        assert again.initial_referrer == "https://www.google.com/"
        assert again.utm_params["utm_source"] == "newsletter"

    def test_update_sums_counters(self, store):
        store.update(TOKEN, SessionDelta(page_views=1, visibility_changes=2))
        session = store.update(TOKEN, SessionDelta(page_views=1, visibility_changes=1))
        assert session.page_count == 2
        assert session.visibility_changes == 3

    def test_update_creates_missing_session(self, store):
        session = store.update(TOKEN, SessionDelta(page_views=1, duration_seconds=5))
        assert session.created is True
        assert session.page_count == 1
        assert session.duration_seconds == 5

    def test_out_of_order_deltas_never_decrease(self, store):
        """Test a stale beacon arriving late cannot roll maxima back."""
        store.update(TOKEN, SessionDelta(duration_seconds=90, scrolled_percentage=80))
        session = store.update(TOKEN, SessionDelta(duration_seconds=30, scrolled_percentage=20))
        assert session.duration_seconds == 90
        assert session.max_scrolled_percentage == 80

    def test_scroll_is_clamped(self, store):
        session = store.update(TOKEN, SessionDelta(scrolled_percentage=250))
        assert session.max_scrolled_percentage == 100

    def test_last_seen_moves_forward(self, store, clock):
        store.update(TOKEN, SessionDelta(page_views=1))
        clock.state["now"] += timedelta(minutes=5)
        session = store.update(TOKEN, SessionDelta(page_views=1))
        assert session.last_seen == "2025-01-15T10:05:00+00:00"

    def test_ttl_refreshed_on_every_update(self, store, fake_redis):
        store.update(TOKEN, SessionDelta(page_views=1))
        fake_redis.advance(80000)
        store.update(TOKEN, SessionDelta(page_views=1))
        assert fake_redis.ttl(f"session:{TOKEN}") == 86400
        assert fake_redis.ttl(f"session:{TOKEN}:peaks") == 86400

    def test_session_expires_after_inactivity(self, store, fake_redis):
        store.update(TOKEN, SessionDelta(page_views=3))
        fake_redis.advance(86401)
        session = store.get_or_create(TOKEN)
        assert session.created is True
        assert session.page_count == 0

    def test_backend_failure_returns_none(self, store, fake_redis):
        fake_redis.fail = True
        assert store.get_or_create(TOKEN) is None
        assert store.update(TOKEN, SessionDelta(page_views=1)) is None

    def test_to_dict_hides_creation_flag(self, store):
        data = store.update(TOKEN, SessionDelta(page_views=1)).to_dict()
        assert "created" not in data
        assert data["page_count"] == 1
