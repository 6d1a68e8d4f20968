"""
Error types for the ingestion engine.

Client-input errors are pydantic ``ValidationError`` instances and never reach
this module. Cache errors never escape ``fail_open``. What remains is
configuration failure at startup, durable store failure and hasher
precondition faults.
"""

from typing import Optional


class CollectorError(Exception):
    """Base class for collector errors."""


class ConfigurationError(CollectorError):
    """Raised at startup when a required dependency cannot be initialised."""


class PersistenceError(CollectorError):
    """Raised when the durable store rejects or cannot complete a write."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class VisitorHashError(CollectorError, ValueError):
    """Raised when the visitor hasher is called with invalid inputs."""


class DuplicatePageviewError(PersistenceError):
    """Raised when a pageview with the same page_id was already stored."""
