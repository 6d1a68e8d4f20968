"""
Persistence Writer

Each write opens one transaction that contains exactly one insert. All
derived values arrive precomputed, so the transaction holds no network I/O
other than the statement itself.
"""

import logging
import time
from datetime import datetime
from typing import Callable, TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..errors import DuplicatePageviewError, PersistenceError
from ..models.records import EventRecord, PageviewRecord
from .tables import CustomEvent, Pageview

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 2
DEFAULT_BACKOFF_SECONDS = 0.1


class PersistenceWriter:
    """Single-transaction inserts with retry on transient failures."""

    def __init__(
        self,
        session_factory: sessionmaker,
        max_retries: int = DEFAULT_MAX_RETRIES,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            session_factory: Bound ``sessionmaker``
            max_retries: Extra attempts after the first for transient errors
            backoff_seconds: Initial delay, doubled after every failed attempt
            sleep: Injected for tests
        """
        self.session_factory = session_factory
        self.max_retries = max(0, max_retries)
        self.backoff_seconds = backoff_seconds
        self._sleep = sleep

    def _with_retry(self, operation: Callable[[], T], description: str) -> T:
        """Run ``operation``, retrying ``OperationalError`` with exponential backoff.

        Constraint violations and other errors are not retried.
        """
        attempts = self.max_retries + 1
        last_error: Exception = PersistenceError(f"{description} failed")

        for attempt in range(attempts):
            try:
                return operation()
            except OperationalError as exc:
                last_error = exc
                if attempt == attempts - 1:
                    break
                delay = self.backoff_seconds * (2 ** attempt)
                logger.warning(
                    f"{description} failed (attempt {attempt + 1}/{attempts}), "
                    f"retrying in {delay * 1000:.0f}ms: {exc.__class__.__name__}"
                )
                self._sleep(delay)

        logger.error(f"{description} failed after {attempts} attempts: {last_error}")
        raise PersistenceError(f"{description} failed after retries", cause=last_error)

    def write_pageview(self, record: PageviewRecord) -> None:
        """Insert one pageview.

        Raises:
            DuplicatePageviewError: A row with the same page_id exists
            PersistenceError: The store could not complete the insert
        """
        def insert():
            with self.session_factory.begin() as session:
                session.add(Pageview(**record.to_dict()))

        try:
            self._with_retry(insert, "Pageview insert")
        except IntegrityError as exc:
            raise DuplicatePageviewError(
                f"Pageview {record.page_id} already recorded", cause=exc
            ) from exc
        except PersistenceError:
            raise
        except SQLAlchemyError as exc:
            logger.error(f"Pageview insert failed: {exc.__class__.__name__}: {exc}")
            raise PersistenceError("Pageview insert failed", cause=exc) from exc

    def write_event(self, record: EventRecord) -> None:
        """Insert one custom event.

        Raises:
            PersistenceError: The store could not complete the insert
        """
        def insert():
            with self.session_factory.begin() as session:
                session.add(CustomEvent(**record.to_dict()))

        try:
            self._with_retry(insert, "Event insert")
        except PersistenceError:
            raise
        except SQLAlchemyError as exc:
            logger.error(f"Event insert failed: {exc.__class__.__name__}: {exc}")
            raise PersistenceError("Event insert failed", cause=exc) from exc

    def count_older_than(self, cutoff: datetime) -> int:
        """Number of pageviews that ``purge_older_than(cutoff)`` would delete."""
        try:
            with self.session_factory() as session:
                stmt = select(func.count()).select_from(Pageview).where(Pageview.added_iso < cutoff)
                return int(session.execute(stmt).scalar_one())
        except SQLAlchemyError as exc:
            raise PersistenceError("Pageview count failed", cause=exc) from exc

    def purge_older_than(self, cutoff: datetime) -> int:
        """Delete pageviews and custom events older than ``cutoff``.

        Returns:
            Number of pageviews deleted
        """
        def purge():
            with self.session_factory.begin() as session:
                pageviews = session.execute(delete(Pageview).where(Pageview.added_iso < cutoff))
                events = session.execute(delete(CustomEvent).where(CustomEvent.timestamp < cutoff))
                return pageviews.rowcount or 0, events.rowcount or 0

        try:
            deleted_pageviews, deleted_events = self._with_retry(purge, "Retention purge")
        except PersistenceError:
            raise
        except SQLAlchemyError as exc:
            raise PersistenceError("Retention purge failed", cause=exc) from exc

        logger.info(
            f"Retention purge removed {deleted_pageviews} pageviews and "
            f"{deleted_events} custom events older than {cutoff.isoformat()}"
        )
        return deleted_pageviews
