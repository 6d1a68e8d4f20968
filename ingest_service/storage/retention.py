"""
Data retention: rows older than the configured number of months are purged.
"""

import calendar
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from .writer import PersistenceWriter

logger = logging.getLogger(__name__)


def retention_cutoff(months: int, now: Optional[datetime] = None) -> datetime:
    """Return ``now`` moved back by ``months`` calendar months (UTC).

    The day is clamped to the target month's length, so 31 March minus one
    month is 28 (or 29) February.
    """
    now = now or datetime.now(timezone.utc)
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def purge_expired(writer: PersistenceWriter, months: int, dry_run: bool = False,
                  now: Optional[datetime] = None) -> Dict[str, object]:
    """Delete (or, with ``dry_run``, count) pageviews past the retention period."""
    cutoff = retention_cutoff(months, now)

    if dry_run:
        count = writer.count_older_than(cutoff)
        logger.info(f"Dry run: {count} pageviews older than {cutoff.isoformat()} would be deleted")
        return {"cutoff": cutoff, "deleted": 0, "would_delete": count, "dry_run": True}

    deleted = writer.purge_older_than(cutoff)
    return {"cutoff": cutoff, "deleted": deleted, "would_delete": deleted, "dry_run": False}
