"""
Metrics Routes

Flask routes for the pageview transports. POST answers with JSON errors; the
GET pixel answers with the same image whatever happens.
"""

import base64
import binascii
import json
import logging

from flask import Blueprint, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from ingest_service.errors import PersistenceError, VisitorHashError
from ingest_service.models import AppendPayload, PageviewPayload, validation_details

from .models import TransportStats
from .responses import (
    build_cors_headers,
    empty_response,
    invalid_json_response,
    pixel_response,
    server_error_response,
    validation_error_response,
)
from .services import IngestionPipeline
from .utils import get_client_context

logger = logging.getLogger(__name__)


class BeaconDecodeError(ValueError):
    """The GET ``data`` parameter could not be turned into a JSON object."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def decode_beacon_data(data: str) -> dict:
    """Decode a base64 (standard or URL-safe, padding optional) JSON object.

    Raises:
        BeaconDecodeError: with reason ``bad_base64`` or ``bad_json``
    """
    # '+' arrives as ' ' when the tracker did not URL-encode the value
    text = data.strip().replace(" ", "+").replace("-", "+").replace("_", "/")
    text += "=" * (-len(text) % 4)
    try:
        raw = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise BeaconDecodeError("bad_base64") from None

    try:
        body = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise BeaconDecodeError("bad_json") from None

    if not isinstance(body, dict):
        raise BeaconDecodeError("bad_json")
    return body


def create_metrics_blueprint(
    pipeline: IngestionPipeline,
    transport_stats: TransportStats,
    cors_config,
    environment: str = "production",
) -> Blueprint:
    """Create metrics blueprint with routes.

    Args:
        pipeline: The ingestion pipeline instance
        transport_stats: Shared drop/accept counters
        cors_config: ``CorsConfig`` with the allowed origins
        environment: Deployment environment name

    Returns:
        Flask blueprint with the ingestion routes
    """
    bp = Blueprint('metrics', __name__)

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
        if request.method == 'GET':
            transport_stats.record_drop('get', 'pipeline_error')
            return pixel_response()
        transport_stats.record_drop('post', 'pipeline_error')
        return server_error_response()

    @bp.route("/metrics", methods=["GET", "POST", "OPTIONS"])
    @bp.route("/api/metrics", methods=["GET", "POST", "OPTIONS"])
    def metrics():
        """Single resource for both transports plus the CORS preflight."""
        if request.method == 'OPTIONS':
            return empty_response(204)
        if request.method == 'POST':
            return record_pageview()
        return record_pageview_pixel()

    def record_pageview():
        """Record a pageview sent as a JSON body."""
        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            transport_stats.record_drop('post', 'bad_json')
            return invalid_json_response()

        try:
            payload = PageviewPayload.model_validate(body)
        except ValidationError as exc:
            transport_stats.record_drop('post', 'invalid_payload')
            return validation_error_response(validation_details(exc))

        try:
            pipeline.process(payload, get_client_context())
        except (PersistenceError, VisitorHashError) as exc:
            logger.error(f"Failed to record pageview {payload.page_id}: {exc}")
            transport_stats.record_drop('post', 'pipeline_error')
            return server_error_response()

        transport_stats.record_accepted('post')
        return empty_response(204)

    def record_pageview_pixel():
        """Record a pageview sent as ``?data=<base64 JSON>``; always the pixel."""
        data = request.args.get('data')
        if not data:
            transport_stats.record_drop('get', 'missing_data')
            return pixel_response()

        try:
            body = decode_beacon_data(data)
        except BeaconDecodeError as exc:
            logger.debug(f"Dropped pixel beacon: {exc.reason}")
            transport_stats.record_drop('get', exc.reason)
            return pixel_response()

        try:
            payload = PageviewPayload.model_validate(body)
        except ValidationError as exc:
            logger.debug(f"Dropped pixel beacon with {exc.error_count()} validation errors")
            transport_stats.record_drop('get', 'invalid_payload')
            return pixel_response()

        try:
            pipeline.process(payload, get_client_context())
        except Exception:
            logger.exception(f"Pixel beacon for pageview {payload.page_id} not recorded")
            transport_stats.record_drop('get', 'pipeline_error')
            return pixel_response()

        transport_stats.record_accepted('get')
        return pixel_response()

    @bp.route("/metrics/append", methods=["POST", "OPTIONS"])
    @bp.route("/api/metrics/append", methods=["POST", "OPTIONS"])
    def append_engagement():
        """Update session engagement for a pageview already sent."""
        if request.method == 'OPTIONS':
            return empty_response(204)

        body = request.get_json(force=True, silent=True)
        if not isinstance(body, dict):
            return invalid_json_response()

        try:
            payload = AppendPayload.model_validate(body)
        except ValidationError as exc:
            return validation_error_response(validation_details(exc))

        pipeline.append(payload, get_client_context())
        return empty_response(204)

    return bp
