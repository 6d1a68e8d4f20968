"""
Daily-rotating visitor identity.

The identity is a SHA-256 digest over IP, user-agent and the UTC calendar
day. The day string is what rotates the identity: the same inputs collide for
the whole day and change at midnight UTC.
"""

import hashlib
from datetime import date, datetime, timezone
from typing import Union

from .errors import VisitorHashError


def utc_day(moment: Union[date, datetime]) -> date:
    """Return the UTC calendar day for a date or datetime.

    Naive datetimes are taken to be UTC already.
    """
    if isinstance(moment, datetime):
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        return moment.date()
    if isinstance(moment, date):
        return moment
    raise VisitorHashError("Valid date is required")


def generate_visitor_hash(ip: str, user_agent: str, day: Union[date, datetime]) -> str:
    """Generate the visitor identity for ``day``.

    Args:
        ip: Client IP address
        user_agent: User-Agent header value
        day: Calendar day (datetimes are reduced to their UTC day)

    Returns:
        Hex-encoded SHA-256 digest (64 characters)

    Raises:
        VisitorHashError: If ip or user_agent is empty or day is not a date
    """
    if not isinstance(ip, str) or not ip.strip():
        raise VisitorHashError("IP address is required and cannot be empty")
    if not isinstance(user_agent, str) or not user_agent.strip():
        raise VisitorHashError("User-Agent is required and cannot be empty")

    day_string = utc_day(day).isoformat()
    combined = f"{ip}{user_agent}{day_string}"
    return hashlib.sha256(combined.encode("utf-8")).hexdigest()
