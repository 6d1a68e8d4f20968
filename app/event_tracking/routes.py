"""
Event Tracking Routes

Flask routes for handling custom event endpoints.
"""

import logging

from flask import Blueprint, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from app.metrics.responses import (
    build_cors_headers,
    empty_response,
    invalid_json_response,
    server_error_response,
    validation_error_response,
)
from app.metrics.utils import get_client_context
from ingest_service.errors import PersistenceError
from ingest_service.models import EventPayload, validation_details

from .event_tracker import EventTracker

logger = logging.getLogger(__name__)


def create_event_tracking_blueprint(event_tracker: EventTracker, cors_config, environment: str = "production"):
    """Create a Flask blueprint for event tracking routes.

    Args:
        event_tracker: The event tracker service
        cors_config: CORS configuration
        environment: Deployment environment name

    Returns:
        Flask blueprint with event tracking routes
    """
    bp = Blueprint('event_tracking', __name__)

    @bp.after_request
    def add_cors_headers(response):
        origin = request.headers.get('Origin')
        for name, value in build_cors_headers(origin, cors_config, environment).items():
            response.headers[name] = value
        return response

    @bp.errorhandler(Exception)
    def handle_unexpected_error(exc):
        if isinstance(exc, HTTPException):
            return exc
        logger.exception(f"Unhandled error on {request.method} {request.path}")
        return server_error_response("Failed to record event")

    @bp.route("/track/event", methods=["POST", "OPTIONS"])
    @bp.route("/api/track/event", methods=["POST", "OPTIONS"])
    def ingest_event():
        """Ingest a custom event from the tracker."""
        if request.method == 'OPTIONS':
            return empty_response(204)

        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            return invalid_json_response()

        try:
            payload = EventPayload.model_validate(body)
        except ValidationError as exc:
            return validation_error_response(validation_details(exc))

        try:
            event_tracker.track_event(payload, get_client_context())
        except PersistenceError as exc:
            logger.error(f"Failed to record event {payload.event_name}: {exc}")
            return server_error_response("Failed to record event")

        return empty_response(204)

    return bp
