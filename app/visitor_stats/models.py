"""
Data Models for Visitor Stats
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class ActiveVisitorCount:
    """Active visitors in the presence window. ``count`` is None when unknown."""

    count: Optional[int]
    window_seconds: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "count": self.count,
            "window_seconds": self.window_seconds
        }


@dataclass
class HealthStatus:
    """Dependency health snapshot."""

    database: bool
    cache: bool
    transport: Dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.database and self.cache

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "status": "ok" if self.healthy else "degraded",
            "checks": {
                "database": "ok" if self.database else "error",
                "cache": "ok" if self.cache else "error",
            },
            "transport": self.transport
        }
