"""
Factory for creating visitor stats module.
"""
from typing import Optional

from .routes import create_visitor_stats_blueprint
from .services import VisitorStatsService


def create_visitor_stats_module(
    active_visitors,
    redis_client,
    engine,
    transport_stats=None,
    dashboard_token: Optional[str] = None,
) -> dict:
    """Create visitor stats module with service and routes.

    Args:
        active_visitors: Active-visitor presence
        redis_client: Cache client, pinged by the health check
        engine: Database engine, queried by the health check
        transport_stats: Optional ingestion counters reported by the health check
        dashboard_token: Bearer token required for visitor stats (None disables the check)

    Returns:
        Dictionary containing the service and blueprint
    """
    # Create visitor stats service
    visitor_stats_service = VisitorStatsService(
        active_visitors=active_visitors,
        redis_client=redis_client,
        engine=engine,
        transport_stats=transport_stats,
    )

    # Create routes
    blueprint = create_visitor_stats_blueprint(
        visitor_stats_service=visitor_stats_service,
        dashboard_token=dashboard_token,
    )

    return {
        "service": visitor_stats_service,
        "blueprint": blueprint
    }
