"""
Database configuration and session management.
Uses SQLAlchemy async engine (PostgreSQL via asyncpg in production).
"""
import logging

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker

from stylizer.config import settings
from stylizer.models.base import Base

logger = logging.getLogger(__name__)


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine, sizing the pool only for server databases."""
    options = {
        "echo": False,  # Disable SQLAlchemy query logging
        "pool_pre_ping": True,
    }
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(pool_size=10, max_overflow=20)
    return create_async_engine(database_url, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


# Create async engine
engine = build_engine(settings.database_url)

# Create async session factory
AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncSession:
    """
    Dependency for FastAPI routes to get database session.
    Usage: db: AsyncSession = Depends(get_db)
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(bind: AsyncEngine = engine):
    """
    Initialize database: create tables.
    Called on application startup.
    Usage records are created lazily on first access per user.
    """
    from stylizer.models.usage_record import UsageRecord  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured", extra={"event": "db_initialized"})


async def check_database(db: AsyncSession) -> bool:
    """Return True when a trivial query succeeds."""
    await db.execute(text("SELECT 1"))
    return True
