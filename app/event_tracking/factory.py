"""
Factory for creating event tracking module.
"""
from .event_tracker import EventTracker
from .routes import create_event_tracking_blueprint


def create_event_tracking_module(geoip, writer, cors_config, environment: str = "production") -> dict:
    """Create event tracking module with service and routes.

    Args:
        geoip: GeoIP resolver used for the event's country code
        writer: Persistence writer
        cors_config: CORS configuration
        environment: Deployment environment name

    Returns:
        Dictionary containing the service and blueprint
    """
    # Create event tracker service
    event_tracker = EventTracker(geoip=geoip, writer=writer)

    # Create routes
    blueprint = create_event_tracking_blueprint(event_tracker, cors_config, environment)

    return {
        "service": event_tracker,
        "blueprint": blueprint
    }
