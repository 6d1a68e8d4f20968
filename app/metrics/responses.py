"""
Response builders shared by the ingestion endpoints.

Every response carries the same CORS/CSP header set. The pixel response is
byte-identical whatever happened to the request.
"""

import base64
import re
from typing import Dict, Optional

from flask import Response, jsonify

PIXEL_GIF = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

_LOCAL_ORIGIN = re.compile(r"^http://(localhost|127\.0\.0\.1)(:\d+)?$")


def build_cors_headers(origin: Optional[str], cors_config, environment: str = "production") -> Dict[str, str]:
    """CORS and CSP headers for a response to ``origin``.

    ``Access-Control-Allow-Origin`` is only present for allow-listed origins
    (and local origins in development). Everything else is identical for
    allowed and refused origins.
    """
    headers = {
        "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": "86400",
        "Content-Security-Policy": "default-src 'self'",
    }
    if origin and is_origin_allowed(origin, cors_config, environment):
        headers["Access-Control-Allow-Origin"] = origin
    return headers


def is_origin_allowed(origin: str, cors_config, environment: str = "production") -> bool:
    if origin in cors_config.allowed_origins:
        return True
    return environment == "development" and bool(_LOCAL_ORIGIN.match(origin))


def pixel_response() -> Response:
    response = Response(PIXEL_GIF, status=200, mimetype="image/gif")
    response.headers["Cache-Control"] = "no-cache, no-store, must-revalidate"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"
    return response


def empty_response(status: int = 204) -> Response:
    return Response(status=status)


def validation_error_response(details) -> Response:
    response = jsonify({"error": "Validation failed", "details": details})
    response.status_code = 400
    return response


def invalid_json_response() -> Response:
    response = jsonify({"error": "Invalid JSON"})
    response.status_code = 400
    return response


def server_error_response(message: str = "Failed to record pageview") -> Response:
    response = jsonify({"error": "Internal server error", "message": message})
    response.status_code = 500
    return response
