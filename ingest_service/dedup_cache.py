"""
"Seen today" membership for visitor identities.

Only membership is cached: the key exists or it does not. The first
observation of an identity inside the rotation window wins a single atomic
set-if-absent; every later observation finds the key and is non-unique.
Entries end by TTL expiry, never by explicit deletion.
"""

import logging
from typing import Optional

from .fail_open import fail_open
from .redis_client import KeyBuilder

logger = logging.getLogger(__name__)

VISITOR_KEY = "visitor:hash:{digest}"
DEFAULT_VISITOR_TTL_SECONDS = 86400


class DedupCache:
    """Set-if-absent visitor membership with fail-open semantics."""

    def __init__(
        self,
        client,
        ttl_seconds: int = DEFAULT_VISITOR_TTL_SECONDS,
        key_builder: Optional[KeyBuilder] = None,
    ):
        """
        Args:
            client: redis-compatible client
            ttl_seconds: Lifetime of a membership record
            key_builder: Optional key namespacing
        """
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.key = key_builder or KeyBuilder()

    @fail_open(default=True, operation="check_and_record")
    def check_and_record(self, visitor_hash: str) -> bool:
        """Return True if this is the first sighting of ``visitor_hash``.

        A backend failure returns True: over-counting returning visitors
        during an outage is preferred to reporting zero unique visitors.
        """
        key = self.key(VISITOR_KEY.format(digest=visitor_hash))
        created = self.client.set(key, "1", nx=True, ex=self.ttl_seconds)
        is_unique = bool(created)
        logger.debug(f"Visitor {visitor_hash[:12]}... unique={is_unique}")
        return is_unique
