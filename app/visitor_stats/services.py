"""
Visitor Stats Service

Reads the active-visitor count and checks the service's dependencies.
"""

import logging

from ingest_service.fail_open import fail_open
from ingest_service.storage import check_database

from .models import ActiveVisitorCount, HealthStatus

logger = logging.getLogger(__name__)


class VisitorStatsService:
    """Service for the real-time visitor counter and health checks."""

    def __init__(self, active_visitors, redis_client, engine, transport_stats=None):
        """Initialize the visitor stats service.

        Args:
            active_visitors: ``ActiveVisitors`` presence tracker
            redis_client: Cache client
            engine: SQLAlchemy engine
            transport_stats: Optional ``TransportStats``
        """
        self.active_visitors = active_visitors
        self.redis_client = redis_client
        self.engine = engine
        self.transport_stats = transport_stats

    def get_active_visitors(self) -> ActiveVisitorCount:
        return ActiveVisitorCount(
            count=self.active_visitors.count_active(),
            window_seconds=self.active_visitors.window_seconds,
        )

    @fail_open(default=False, operation="health.cache_ping")
    def _cache_ok(self) -> bool:
        return bool(self.redis_client.ping())

    def get_health(self) -> HealthStatus:
        status = HealthStatus(
            database=check_database(self.engine),
            cache=self._cache_ok(),
            transport=self.transport_stats.snapshot() if self.transport_stats else {},
        )
        if not status.healthy:
            logger.warning(f"Health check degraded: {status.to_dict()['checks']}")
        return status
