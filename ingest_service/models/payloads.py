"""
Client payload schemas.

Everything here is client-asserted input and is validated before the
ingestion pipeline runs. Values the server derives itself (uniqueness, bot
flag, country, parsed browser/OS, client IP and user-agent) are not accepted
from the payload; unknown keys are ignored.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

CUID_PATTERN = r"^c[a-z0-9]{24}$"
MAX_METADATA_BYTES = 5 * 1024

DeviceType = Literal["desktop", "mobile", "tablet"]


def _empty_to_none(value: Any) -> Any:
    if isinstance(value, str) and value == "":
        return None
    return value


def _parse_iso(value: Any) -> Any:
    """Accept only ISO 8601 strings and return an aware UTC datetime.

    Numbers are not timestamps here. Offsets that would push the instant
    outside the representable range are rejected.
    """
    if isinstance(value, datetime):
        value = value.isoformat()
    if not isinstance(value, str):
        raise ValueError("must be an ISO 8601 timestamp string")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError("must be a valid ISO 8601 timestamp") from None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        raise ValueError("must be a timestamp representable in UTC") from None


class PageviewPayload(BaseModel):
    """A pageview beacon, as sent by POST body or GET ``data`` parameter."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=False)

    # Identity & timing
    page_id: str = Field(pattern=CUID_PATTERN, description="Client-generated CUID")
    added_iso: datetime = Field(description="Client-reported timestamp")
    session_id: Optional[str] = Field(default=None, max_length=255)

    # Page context
    hostname: Optional[str] = Field(default=None, max_length=255)
    path: str = Field(min_length=1, max_length=2000, pattern=r"^/")
    hash: Optional[str] = Field(default=None, max_length=1000)
    query_string: Optional[str] = Field(default=None, max_length=2000)
    document_title: Optional[str] = Field(default=None, max_length=500)
    document_referrer: Optional[str] = Field(default=None, max_length=2000)
    is_internal_referrer: bool = Field(strict=True)

    # Device
    device_type: DeviceType
    viewport_width: Optional[int] = Field(default=None, gt=0, strict=True)
    viewport_height: Optional[int] = Field(default=None, gt=0, strict=True)
    screen_width: Optional[int] = Field(default=None, gt=0, strict=True)
    screen_height: Optional[int] = Field(default=None, gt=0, strict=True)

    # Locale
    language: Optional[str] = Field(default=None, max_length=10)
    timezone: Optional[str] = Field(default=None, max_length=100)

    # Attribution
    utm_source: Optional[str] = Field(default=None, max_length=255)
    utm_medium: Optional[str] = Field(default=None, max_length=255)
    utm_campaign: Optional[str] = Field(default=None, max_length=255)
    utm_content: Optional[str] = Field(default=None, max_length=255)
    utm_term: Optional[str] = Field(default=None, max_length=255)

    # Engagement
    duration_seconds: int = Field(ge=0, strict=True)
    time_on_page_seconds: Optional[int] = Field(default=None, ge=0, strict=True)
    scrolled_percentage: Optional[int] = Field(default=None, ge=0, le=100, strict=True)
    visibility_changes: int = Field(ge=0, strict=True)

    @field_validator(
        "session_id", "hostname", "hash", "query_string", "document_title",
        "document_referrer", "language", "timezone", "utm_source", "utm_medium",
        "utm_campaign", "utm_content", "utm_term",
        mode="before",
    )
    @classmethod
    def blank_is_missing(cls, value: Any) -> Any:
        return _empty_to_none(value)

    @field_validator("added_iso", mode="before")
    @classmethod
    def iso_timestamp(cls, value: Any) -> Any:
        return _parse_iso(value)

    def utm_params(self) -> Dict[str, Optional[str]]:
        return {
            "utm_source": self.utm_source,
            "utm_medium": self.utm_medium,
            "utm_campaign": self.utm_campaign,
            "utm_content": self.utm_content,
            "utm_term": self.utm_term,
        }


class AppendPayload(BaseModel):
    """Engagement update for a pageview already sent."""

    model_config = ConfigDict(extra="ignore")

    page_id: str = Field(pattern=CUID_PATTERN)
    session_id: Optional[str] = Field(default=None, max_length=255)
    duration_seconds: int = Field(ge=0, strict=True)
    scrolled_percentage: Optional[int] = Field(default=None, ge=0, le=100, strict=True)
    visibility_changes: int = Field(
        default=0, ge=0, strict=True,
        description="Visibility changes since the previous beacon for this page",
    )

    @field_validator("session_id", mode="before")
    @classmethod
    def blank_is_missing(cls, value: Any) -> Any:
        return _empty_to_none(value)


class EventPayload(BaseModel):
    """Custom event (button click, scroll milestone, ...)."""

    model_config = ConfigDict(extra="ignore")

    event_name: str = Field(min_length=1, max_length=255)
    event_metadata: Optional[Dict[str, Any]] = None
    page_id: Optional[str] = Field(default=None, pattern=CUID_PATTERN)
    session_id: str = Field(min_length=1, max_length=255)
    path: str = Field(min_length=1, max_length=2000)
    timestamp: datetime

    @field_validator("page_id", mode="before")
    @classmethod
    def blank_is_missing(cls, value: Any) -> Any:
        return _empty_to_none(value)

    @field_validator("timestamp", mode="before")
    @classmethod
    def iso_timestamp(cls, value: Any) -> Any:
        return _parse_iso(value)

    @field_validator("event_metadata")
    @classmethod
    def metadata_size(cls, value: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if value is None:
            return value
        try:
            encoded = json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError):
            raise ValueError("Event metadata must be JSON serializable") from None
        if len(encoded) > MAX_METADATA_BYTES:
            raise ValueError("Event metadata must be less than 5KB when stringified")
        return value


def validation_details(exc: ValidationError) -> List[Dict[str, str]]:
    """Flatten a pydantic error into ``[{"field": ..., "message": ...}]``."""
    details = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "body"
        details.append({"field": field, "message": error.get("msg", "Invalid value")})
    return details
