"""
ORM tables for the durable store.

Rows are append-only: a pageview is inserted once and never updated.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class Pageview(Base):
    __tablename__ = "pageviews"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    page_id: Mapped[str] = mapped_column(String(25), nullable=False, unique=True)
    added_iso: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    session_id: Mapped[Optional[str]] = mapped_column(String(255))

    # Page context
    hostname: Mapped[Optional[str]] = mapped_column(String(255))
    path: Mapped[str] = mapped_column(String(2000), nullable=False)
    hash: Mapped[Optional[str]] = mapped_column(String(1000))
    query_string: Mapped[Optional[str]] = mapped_column(String(2000))
    document_title: Mapped[Optional[str]] = mapped_column(String(500))
    document_referrer: Mapped[Optional[str]] = mapped_column(String(2000))
    referrer_domain: Mapped[Optional[str]] = mapped_column(String(255))
    referrer_category: Mapped[str] = mapped_column(String(20), nullable=False, default="Direct")

    # Visitor classification
    is_unique: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_internal_referrer: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Device & browser
    device_type: Mapped[str] = mapped_column(String(10), nullable=False)
    browser_name: Mapped[Optional[str]] = mapped_column(String(100))
    browser_version: Mapped[Optional[str]] = mapped_column(String(50))
    browser_major_version: Mapped[Optional[str]] = mapped_column(String(10))
    os_name: Mapped[Optional[str]] = mapped_column(String(100))
    os_version: Mapped[Optional[str]] = mapped_column(String(50))
    viewport_width: Mapped[Optional[int]] = mapped_column(Integer)
    viewport_height: Mapped[Optional[int]] = mapped_column(Integer)
    screen_width: Mapped[Optional[int]] = mapped_column(Integer)
    screen_height: Mapped[Optional[int]] = mapped_column(Integer)

    # Locale
    language: Mapped[Optional[str]] = mapped_column(String(10))
    timezone: Mapped[Optional[str]] = mapped_column(String(100))
    user_agent: Mapped[str] = mapped_column(Text, nullable=False)
    country_code: Mapped[Optional[str]] = mapped_column(String(2))

    # Attribution
    utm_source: Mapped[Optional[str]] = mapped_column(String(255))
    utm_medium: Mapped[Optional[str]] = mapped_column(String(255))
    utm_campaign: Mapped[Optional[str]] = mapped_column(String(255))
    utm_content: Mapped[Optional[str]] = mapped_column(String(255))
    utm_term: Mapped[Optional[str]] = mapped_column(String(255))

    # Engagement
    duration_seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    time_on_page_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    scrolled_percentage: Mapped[Optional[int]] = mapped_column(Integer)
    visibility_changes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_pageviews_added_iso", "added_iso"),
        Index("ix_pageviews_session_id", "session_id"),
        Index("ix_pageviews_path_added_iso", "path", "added_iso"),
        Index("ix_pageviews_is_bot_added_iso", "is_bot", "added_iso"),
    )

    def __repr__(self) -> str:
        return f"<Pageview page_id={self.page_id} path={self.path!r} unique={self.is_unique}>"


class CustomEvent(Base):
    __tablename__ = "custom_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_name: Mapped[str] = mapped_column(String(255), nullable=False)
    event_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    page_id: Mapped[Optional[str]] = mapped_column(String(25))
    session_id: Mapped[str] = mapped_column(String(255), nullable=False)
    path: Mapped[str] = mapped_column(String(2000), nullable=False)
    country_code: Mapped[Optional[str]] = mapped_column(String(2))
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_custom_events_name_timestamp", "event_name", "timestamp"),
        Index("ix_custom_events_session_id", "session_id"),
        Index("ix_custom_events_page_id", "page_id"),
    )
