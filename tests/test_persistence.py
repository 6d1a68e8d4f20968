"""
Tests for the durable store writer and retention.
"""

from contextlib import contextmanager
from datetime import datetime, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from ingest_service.errors import DuplicatePageviewError, PersistenceError
from ingest_service.models import EventRecord, PageviewRecord
from ingest_service.storage import (
    CustomEvent,
    Pageview,
    PersistenceWriter,
    check_database,
    create_schema,
    create_session_factory,
)
from ingest_service.storage.retention import purge_expired, retention_cutoff

from conftest import CHROME_UA, page_id


def make_record(n=1, **overrides):
    values = dict(
        page_id=page_id(n),
        added_iso=datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc),
        session_id="session-abc-123",
        hostname="franksblog.nl",
        path="/blog/post",
        hash=None,
        query_string=None,
        document_title="A post",
        document_referrer=None,
        referrer_domain=None,
        referrer_category="Direct",
        is_unique=True,
        is_bot=False,
        is_internal_referrer=False,
        device_type="desktop",
        browser_name="Chrome",
        browser_version="120.0.6099.129",
        browser_major_version="120",
        os_name="Windows",
        os_version="10",
        viewport_width=1280,
        viewport_height=800,
        screen_width=None,
        screen_height=None,
        language="en-US",
        timezone="Europe/Amsterdam",
        user_agent=CHROME_UA,
        country_code="US",
        utm_source=None,
        utm_medium=None,
        utm_campaign=None,
        utm_content=None,
        utm_term=None,
        duration_seconds=12,
        time_on_page_seconds=None,
        scrolled_percentage=40,
        visibility_changes=1,
    )
    values.update(overrides)
    return PageviewRecord(**values)


@pytest.fixture
def session_factory(engine):
    create_schema(engine)
    return create_session_factory(engine)


@pytest.fixture
def writer(session_factory):
    return PersistenceWriter(session_factory, max_retries=0)


class FlakySessionFactory:
    """Session factory whose transactions fail a fixed number of times."""

    def __init__(self, failures):
        self.failures = failures
        self.calls = 0

    @contextmanager
    def begin(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise OperationalError("INSERT INTO pageviews", {}, Exception("database is locked"))
        yield FakeSession()


class FakeSession:
    def add(self, row):
        self.row = row


class TestWritePageview:
    """Test single-row pageview inserts."""

    def test_row_is_stored(self, writer, session_factory):
        writer.write_pageview(make_record())
        with session_factory() as session:
            row = session.execute(select(Pageview)).scalar_one()
        assert row.page_id == page_id(1)
        assert row.is_unique is True
        assert row.country_code == "US"
        assert row.created_at is not None

    def test_duplicate_page_id(self, writer, session_factory):
        writer.write_pageview(make_record())
        with pytest.raises(DuplicatePageviewError):
            writer.write_pageview(make_record(is_unique=False))

        with session_factory() as session:
            rows = session.execute(select(Pageview)).scalars().all()
        assert len(rows) == 1
        assert rows[0].is_unique is True

    def test_duplicate_is_a_persistence_error(self):
        assert issubclass(DuplicatePageviewError, PersistenceError)


class TestRetry:
    """Test transient failure handling."""

    def test_transient_failure_is_retried_with_backoff(self):
        delays = []
        factory = FlakySessionFactory(failures=2)
        writer = PersistenceWriter(factory, max_retries=2, backoff_seconds=0.1, sleep=delays.append)

        writer.write_pageview(make_record())

        assert factory.calls == 3
        assert delays == pytest.approx([0.1, 0.2])

    def test_retries_exhausted(self):
        delays = []
        factory = FlakySessionFactory(failures=10)
        writer = PersistenceWriter(factory, max_retries=2, sleep=delays.append)

        with pytest.raises(PersistenceError) as exc_info:
            writer.write_pageview(make_record())

        assert not isinstance(exc_info.value, DuplicatePageviewError)
        assert isinstance(exc_info.value.cause, OperationalError)
        assert factory.calls == 3
        assert len(delays) == 2

    def test_no_retries(self):
        factory = FlakySessionFactory(failures=1)
        writer = PersistenceWriter(factory, max_retries=0, sleep=lambda _: None)
        with pytest.raises(PersistenceError):
            writer.write_event(EventRecord(
                event_name="click", session_id="s", path="/",
                timestamp=datetime(2025, 1, 15, tzinfo=timezone.utc),
            ))
        assert factory.calls == 1


class TestWriteEvent:

    def test_event_is_stored(self, writer, session_factory):
        writer.write_event(EventRecord(
            event_name="button_click",
            session_id="session-abc-123",
            path="/blog/post",
            timestamp=datetime(2025, 1, 15, 10, 31, tzinfo=timezone.utc),
            event_metadata={"button": "subscribe"},
            page_id=page_id(1),
            country_code="GB",
        ))
        with session_factory() as session:
            row = session.execute(select(CustomEvent)).scalar_one()
        assert row.event_metadata == {"button": "subscribe"}
        assert row.country_code == "GB"


class TestRetention:
    """Test retention cutoffs and purging."""

    @pytest.mark.parametrize("now,months,expected", [
        (datetime(2025, 3, 31, tzinfo=timezone.utc), 1, datetime(2025, 2, 28, tzinfo=timezone.utc)),
        (datetime(2024, 3, 31, tzinfo=timezone.utc), 1, datetime(2024, 2, 29, tzinfo=timezone.utc)),
        (datetime(2025, 1, 15, tzinfo=timezone.utc), 24, datetime(2023, 1, 15, tzinfo=timezone.utc)),
        (datetime(2025, 1, 15, tzinfo=timezone.utc), 13, datetime(2023, 12, 15, tzinfo=timezone.utc)),
    ])
    def test_cutoff(self, now, months, expected):
        assert retention_cutoff(months, now) == expected

    def test_purge_removes_only_old_rows(self, writer, session_factory):
        writer.write_pageview(make_record(1, added_iso=datetime(2022, 6, 1, tzinfo=timezone.utc)))
        writer.write_pageview(make_record(2, added_iso=datetime(2024, 12, 1, tzinfo=timezone.utc)))
        writer.write_event(EventRecord(
            event_name="old", session_id="s", path="/",
            timestamp=datetime(2022, 6, 1, tzinfo=timezone.utc),
        ))
        now = datetime(2025, 1, 15, tzinfo=timezone.utc)

        preview = purge_expired(writer, 24, dry_run=True, now=now)
        assert preview["would_delete"] == 1
        assert preview["deleted"] == 0

        result = purge_expired(writer, 24, now=now)
        assert result["deleted"] == 1

        with session_factory() as session:
            remaining = session.execute(select(Pageview.page_id)).scalars().all()
            events = session.execute(select(CustomEvent)).scalars().all()
        assert remaining == [page_id(2)]
        assert events == []


def test_check_database(engine):
    assert check_database(engine) is True
