"""
Visitor Stats Routes

Flask routes for the visitor stats subsystem.
"""

import hmac
from functools import wraps
from typing import Callable, Optional

from flask import Blueprint, jsonify, request

from .services import VisitorStatsService


def create_visitor_stats_blueprint(
    visitor_stats_service: VisitorStatsService,
    dashboard_token: Optional[str] = None
) -> Blueprint:
    """Create visitor stats blueprint with routes.

    Args:
        visitor_stats_service: The visitor stats service instance
        dashboard_token: Bearer token for stats routes; None leaves them open

    Returns:
        Flask blueprint with visitor stats routes
    """
    blueprint = Blueprint('visitor_stats', __name__, url_prefix='/api')

    def token_required(f: Callable) -> Callable:
        """Decorator to require the dashboard bearer token."""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not dashboard_token:
                return f(*args, **kwargs)

            header = request.headers.get('Authorization', '')
            scheme, _, token = header.partition(' ')
            if scheme.lower() != 'bearer' or not hmac.compare_digest(token.strip().encode(), dashboard_token.encode()):
                return jsonify({'error': 'Unauthorized'}), 401

            return f(*args, **kwargs)
        return decorated_function

    @blueprint.route('/active-visitors', methods=['GET'])
    @token_required
    def active_visitors():
        """Visitors seen in the presence window; count is null when unknown."""
        result = visitor_stats_service.get_active_visitors()
        response = jsonify(result.to_dict())
        response.headers['Cache-Control'] = 'no-store'
        return response

    @blueprint.route('/health', methods=['GET'])
    def health():
        """Dependency health for monitoring."""
        status = visitor_stats_service.get_health()
        return jsonify(status.to_dict()), 200 if status.healthy else 503

    return blueprint
