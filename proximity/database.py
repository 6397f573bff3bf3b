import logging
from typing import Any, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

logger = logging.getLogger("database")


# ---------------------------------------------------------------------------
# Engine Setup
# ---------------------------------------------------------------------------

def _detect_driver(url: str) -> str:
    try:
        return make_url(url).drivername
    except Exception:
        return url.split(":", 1)[0]


def make_engine(url: str) -> AsyncEngine:
    """Create the async engine for a database URL.

    SQLite files get no pooling so connections never outlive the event loop
    that opened them; server databases get a small pool with pre-ping.
    """
    url = (url or "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is required.")

    driver = _detect_driver(url)
    engine_kwargs: Dict[str, Any] = {
        "echo": False,
        "future": True,
    }
    if driver.startswith("sqlite"):
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_pre_ping"] = True
        engine_kwargs["pool_size"] = 5
        engine_kwargs["max_overflow"] = 5

    return create_async_engine(url, **engine_kwargs)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


# ---------------------------------------------------------------------------
# Utilities
# ---------------------------------------------------------------------------

def get_database_dsn(engine: AsyncEngine, hide_password: bool = True) -> str:
    """Return the engine's DSN with the password masked."""
    return engine.url.render_as_string(hide_password=hide_password)


async def init_db_async(engine: AsyncEngine) -> None:
    """Create the reminder tables if they do not exist yet."""
    from proximity.models import models

    try:
        async with engine.begin() as conn:
            await conn.run_sync(models.Base.metadata.create_all)
        logger.info("Database initialized successfully.")
    except Exception as e:
        logger.critical("Database initialization failed: %s", e)
        raise RuntimeError("Failed to initialize database") from e


async def shutdown_db_async(engine: AsyncEngine) -> None:
    """Dispose the async engine cleanly."""
    try:
        await engine.dispose()
        logger.info("Database connection pool closed.")
    except Exception as e:
        logger.error("Error shutting down database engine: %s", e)
        raise
