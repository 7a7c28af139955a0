"""
Database connection and session management
"""

from datetime import datetime, timezone
from typing import AsyncGenerator
import structlog
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from refrr.core.config import settings

logger = structlog.get_logger()


def async_database_url(url: str) -> str:
    """Point a plain database URL at its asyncio driver"""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"echo": settings.DATABASE_ECHO}
    return {
        "echo": settings.DATABASE_ECHO,
        "pool_pre_ping": True,
        "pool_size": 5,
        "max_overflow": 10,
    }


database_url = async_database_url(settings.DATABASE_URL)

# Create async engine
engine = create_async_engine(database_url, **_engine_options(database_url))

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_database() -> AsyncGenerator[AsyncSession, None]:
    """Get database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def close_database():
    """Close database connection"""
    await engine.dispose()
    logger.info("Database engine disposed")


def utcnow() -> datetime:
    """Naive UTC timestamp, the format every timestamp column stores"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def insert_ignoring_conflicts(db: AsyncSession, table):
    """INSERT ... ON CONFLICT DO NOTHING for the session's dialect"""
    dialect = db.get_bind().dialect.name
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing()
    return postgresql.insert(table).on_conflict_do_nothing()
