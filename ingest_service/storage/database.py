"""
Engine and session factory for the durable store.
"""

import logging

from sqlalchemy import create_engine as sa_create_engine
from sqlalchemy import text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .tables import Base

logger = logging.getLogger(__name__)


def create_engine(url: str, connect_timeout: int = 10, echo: bool = False) -> Engine:
    """Create an engine with a bounded connect timeout.

    Args:
        url: SQLAlchemy database URL
        connect_timeout: Seconds to wait for a connection (or, for SQLite, a lock)
        echo: Log SQL statements
    """
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        connect_args = {"timeout": connect_timeout, "check_same_thread": False}
    else:
        connect_args = {"connect_timeout": connect_timeout}

    engine = sa_create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        connect_args=connect_args,
    )
    logger.info(f"Database engine created for backend {backend}")
    return engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def create_schema(engine: Engine) -> None:
    """Create missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(engine)


def check_database(engine: Engine) -> bool:
    """Return True if a trivial query succeeds."""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning(f"Database health check failed: {exc.__class__.__name__}: {exc}")
        return False
