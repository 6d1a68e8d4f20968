"""
Durable store: ORM tables, engine construction and the persistence writer.
"""

from .database import check_database, create_engine, create_schema, create_session_factory
from .tables import Base, CustomEvent, Pageview
from .writer import PersistenceWriter

__all__ = [
    "Base",
    "Pageview",
    "CustomEvent",
    "PersistenceWriter",
    "check_database",
    "create_engine",
    "create_schema",
    "create_session_factory",
]
