# Ingestion service package: visitor identity, deduplication and persistence

from .errors import (
    CollectorError,
    ConfigurationError,
    DuplicatePageviewError,
    PersistenceError,
    VisitorHashError,
)
from .visitor_hash import generate_visitor_hash, utc_day
from .bot_filter import BOT_PATTERNS, is_bot
from .user_agent import ParsedUserAgent, extract_major_version, parse_user_agent
from .referrer import categorize, classify_referrer, extract_domain
from .fail_open import fail_open
from .redis_client import KeyBuilder, create_redis_client
from .dedup_cache import DedupCache
from .session_store import SessionStore
from .active_visitors import ActiveVisitors
from .geoip import GeoIPResolver
from .logging_config import (
    setup_logging,
    stop_logging,
    get_logger,
)

__all__ = [
    "CollectorError",
    "ConfigurationError",
    "DuplicatePageviewError",
    "PersistenceError",
    "VisitorHashError",
    "generate_visitor_hash",
    "utc_day",
    "BOT_PATTERNS",
    "is_bot",
    "ParsedUserAgent",
    "parse_user_agent",
    "extract_major_version",
    "categorize",
    "classify_referrer",
    "extract_domain",
    "fail_open",
    "KeyBuilder",
    "create_redis_client",
    "DedupCache",
    "SessionStore",
    "ActiveVisitors",
    "GeoIPResolver",
    "setup_logging",
    "stop_logging",
    "get_logger",
]
