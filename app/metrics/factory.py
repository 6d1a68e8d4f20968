"""
Factory for creating the metrics module.
"""
from typing import Optional

from .models import TransportStats
from .routes import create_metrics_blueprint
from .services import IngestionPipeline


def create_metrics_module(
    dedup_cache,
    session_store,
    active_visitors,
    geoip,
    writer,
    cors_config,
    environment: str = "production",
    transport_stats: Optional[TransportStats] = None,
) -> dict:
    """Create metrics module with pipeline and routes.

    Args:
        dedup_cache: Visitor dedup cache
        session_store: Session continuity store
        active_visitors: Active-visitor presence
        geoip: GeoIP resolver
        writer: Persistence writer
        cors_config: CORS configuration
        environment: Deployment environment name
        transport_stats: Optional shared counters (a new instance by default)

    Returns:
        Dictionary containing the service, the transport stats and the blueprint
    """
    pipeline = IngestionPipeline(
        dedup_cache=dedup_cache,
        session_store=session_store,
        active_visitors=active_visitors,
        geoip=geoip,
        writer=writer,
    )
    stats = transport_stats or TransportStats()

    blueprint = create_metrics_blueprint(
        pipeline=pipeline,
        transport_stats=stats,
        cors_config=cors_config,
        environment=environment,
    )

    return {
        "service": pipeline,
        "transport_stats": stats,
        "blueprint": blueprint
    }
