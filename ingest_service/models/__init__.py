"""
Models package for the collector.

Client payload schemas (pydantic) and the internal records passed between
pipeline stages (dataclasses).
"""

from .payloads import (
    AppendPayload,
    EventPayload,
    PageviewPayload,
    validation_details,
)

from .records import (
    ClientContext,
    EventRecord,
    PageviewRecord,
    SessionDelta,
    SessionRecord,
)

__all__ = [
    # Payloads
    "PageviewPayload",
    "AppendPayload",
    "EventPayload",
    "validation_details",

    # Records
    "ClientContext",
    "SessionDelta",
    "SessionRecord",
    "PageviewRecord",
    "EventRecord",
]
