"""
Redis client construction.

One client is built at startup and injected into the cache-backed components.
Every call carries a bounded socket timeout so a hung backend cannot hang a
request.
"""

import logging

import redis
from redis.backoff import NoBackoff
from redis.retry import Retry

logger = logging.getLogger(__name__)


def create_redis_client(
    url: str,
    socket_timeout: float = 0.5,
    connect_timeout: float = 0.5,
) -> "redis.Redis":
    """Build a redis client from a URL.

    The connection is opened lazily on first command, so an unreachable
    backend at startup only degrades the cache-backed features.
    """
    client = redis.Redis.from_url(
        url,
        socket_timeout=socket_timeout,
        socket_connect_timeout=connect_timeout,
        retry=Retry(NoBackoff(), 1),
        decode_responses=True,
        health_check_interval=30,
    )
    logger.info(f"Redis client configured for {_redact(url)}")
    return client


class KeyBuilder:
    """Builds namespaced cache keys.

    A non-empty prefix isolates deployments (or test runs) sharing one
    backend.
    """

    def __init__(self, prefix: str = ""):
        self.prefix = prefix.strip(":")

    def __call__(self, key: str) -> str:
        return f"{self.prefix}:{key}" if self.prefix else key


def _redact(url: str) -> str:
    """Hide the password part of a redis URL."""
    if "@" not in url:
        return url
    scheme, _, rest = url.partition("://")
    return f"{scheme}://***@{rest.split('@', 1)[1]}"
