from datetime import datetime, timezone

from flask import request

from ingest_service.models import ClientContext

UNKNOWN_USER_AGENT = "unknown"


def get_client_ip():
    """Get client IP address, handling proxy headers."""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP').strip()
    else:
        return request.remote_addr or "127.0.0.1"


def get_client_context() -> ClientContext:
    """Collect IP, user-agent and receive time for the current request.

    The user-agent always comes from the request header. A missing header is
    replaced by a fixed sentinel so the visitor hash stays computable.
    """
    user_agent = request.headers.get('User-Agent', '').strip()
    return ClientContext(
        ip=get_client_ip() or "127.0.0.1",
        user_agent=user_agent or UNKNOWN_USER_AGENT,
        received_at=datetime.now(timezone.utc),
    )
