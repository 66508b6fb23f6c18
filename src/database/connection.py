"""
Database Connection Management

Synchronous SQLAlchemy 2.0 engine lifecycle for the silver load.
The load runs one table at a time, so a single engine with a small pool
is enough.
"""

from typing import Optional

import structlog
from sqlalchemy import Engine, create_engine, text

from src.config import get_settings

logger = structlog.get_logger(__name__)
settings = get_settings()

# Global engine
_engine: Optional[Engine] = None


def init_database(url: Optional[str] = None) -> Engine:
    """
    Initialize the database engine.

    Args:
        url: SQLAlchemy URL, defaults to the configured destination

    Returns:
        Engine: The initialized database engine
    """
    global _engine

    if _engine is not None:
        logger.warning("Database already initialized")
        return _engine

    _engine = create_engine(
        url or settings.database.sync_url,
        echo=settings.database.echo,
        future=True,
        pool_pre_ping=True,  # Verify connections before use
    )

    # Verify connection
    try:
        with _engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        logger.info("Database connection established", url=_engine.url.render_as_string(hide_password=True))
    except Exception as e:
        logger.error("Failed to connect to database", error=str(e))
        _engine.dispose()
        _engine = None
        raise

    return _engine


def close_database() -> None:
    """Dispose of the engine and its pooled connections."""
    global _engine

    if _engine is not None:
        _engine.dispose()
        _engine = None
        logger.info("Database connection pool closed")
