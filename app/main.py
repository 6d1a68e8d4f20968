import argparse
import logging
import sys
from pathlib import Path

# Import configuration management
sys.path.append(str(Path(__file__).parent.parent))
from config_manager import ConfigManager

from flask import Flask
from werkzeug.middleware.proxy_fix import ProxyFix

from ingest_service import (
    ActiveVisitors,
    DedupCache,
    GeoIPResolver,
    KeyBuilder,
    SessionStore,
    create_redis_client,
    setup_logging,
)
from ingest_service.storage import (
    PersistenceWriter,
    create_engine,
    create_schema,
    create_session_factory,
)

logger = logging.getLogger(__name__)


def create_app(config_manager=None, redis_client=None, geoip=None, engine=None) -> Flask:
    """Build the collector application.

    Collaborators not passed in are built from configuration.

    Args:
        config_manager: ``ConfigManager`` (loaded from the default file if None)
        redis_client: Cache client
        geoip: ``GeoIPResolver``
        engine: SQLAlchemy engine

    Raises:
        ConfigurationError: A required dependency (GeoIP database) is unavailable
    """
    config_manager = config_manager or ConfigManager()
    app_config = config_manager.get_app_config()
    cors_config = config_manager.get_cors_config()
    redis_config = config_manager.get_redis_config()
    geoip_config = config_manager.get_geoip_config()
    db_config = config_manager.get_database_config()

    app = Flask(__name__)
    app.wsgi_app = ProxyFix(
            app.wsgi_app,
            x_for   = 1,     # trust 1 hop for X-Forwarded-For
            x_proto = 1,     # trust 1 hop for X-Forwarded-Proto
            x_host  = 1,     # trust 1 hop for X-Forwarded-Host
            x_prefix= 1)     # trust 1 hop for X-Forwarded-Prefix

    # -------------------------------------------------------------------------
    # Dependencies
    # -------------------------------------------------------------------------

    if redis_client is None:
        redis_client = create_redis_client(
            redis_config.url,
            socket_timeout=redis_config.socket_timeout,
            connect_timeout=redis_config.connect_timeout,
        )

    if geoip is None:
        geoip = GeoIPResolver.from_path(geoip_config.database_path, required=geoip_config.required)

    if engine is None:
        if db_config.url.startswith("sqlite:///") and not db_config.url.startswith("sqlite:///:memory:"):
            Path(db_config.url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(db_config.url, connect_timeout=db_config.connect_timeout)
    create_schema(engine)

    keys = KeyBuilder(redis_config.key_prefix)
    dedup_cache = DedupCache(redis_client, ttl_seconds=redis_config.visitor_ttl_seconds, key_builder=keys)
    session_store = SessionStore(redis_client, ttl_seconds=redis_config.session_ttl_seconds, key_builder=keys)
    active_visitors = ActiveVisitors(
        redis_client, window_seconds=redis_config.active_window_seconds, key_builder=keys
    )
    writer = PersistenceWriter(create_session_factory(engine), max_retries=db_config.max_retries)

    # -------------------------------------------------------------------------
    # Subsystems
    # -------------------------------------------------------------------------

    # Initialize metrics module
    from app.metrics.factory import create_metrics_module

    metrics_module = create_metrics_module(
        dedup_cache=dedup_cache,
        session_store=session_store,
        active_visitors=active_visitors,
        geoip=geoip,
        writer=writer,
        cors_config=cors_config,
        environment=app_config.environment,
    )

    # Initialize event tracking module
    from app.event_tracking.factory import create_event_tracking_module

    event_tracking_module = create_event_tracking_module(
        geoip=geoip,
        writer=writer,
        cors_config=cors_config,
        environment=app_config.environment,
    )

    # Initialize visitor stats module
    from app.visitor_stats.factory import create_visitor_stats_module

    visitor_stats_module = create_visitor_stats_module(
        active_visitors=active_visitors,
        redis_client=redis_client,
        engine=engine,
        transport_stats=metrics_module["transport_stats"],
        dashboard_token=app_config.dashboard_token,
    )

    # Register blueprints
    app.register_blueprint(metrics_module["blueprint"])
    app.register_blueprint(event_tracking_module["blueprint"])
    app.register_blueprint(visitor_stats_module["blueprint"])

    app.extensions["collector"] = {
        "pipeline": metrics_module["service"],
        "transport_stats": metrics_module["transport_stats"],
        "event_tracker": event_tracking_module["service"],
        "visitor_stats": visitor_stats_module["service"],
        "writer": writer,
        "engine": engine,
    }

    logger.info(
        f"Collector ready: environment={app_config.environment}, "
        f"origins={len(cors_config.allowed_origins)}, geoip={'on' if geoip.available else 'off'}"
    )
    return app


# -----------------------------------------------------------------------------
# Entry point
# -----------------------------------------------------------------------------

if __name__ == "__main__":
    # Parse command line arguments
    parser = argparse.ArgumentParser(description="Privacy-first pageview collector")
    parser.add_argument("--port", type=int, help="Port to run the server on")
    parser.add_argument("--host", type=str, help="Host to bind the server to")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    args = parser.parse_args()

    config_manager = ConfigManager()
    app_config = config_manager.get_app_config()

    # Override configuration with command line arguments
    if args.port:
        app_config.port = args.port
    if args.host:
        app_config.host = args.host
    if args.debug:
        app_config.debug = args.debug

    setup_logging(debug=app_config.debug)
    app = create_app(config_manager)
    logger.info(f"Serving on {app_config.host}:{app_config.port}")
    app.run(
        host=app_config.host,
        port=app_config.port,
        debug=app_config.debug
    )
