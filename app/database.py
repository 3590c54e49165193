"""
Database connection and session management for PostgreSQL.
Handles async database operations with SQLAlchemy and connection pooling.
"""

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy import text, DateTime, Uuid
from app.config import settings
import logging
import uuid
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict, Any

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Timezone-aware current time used for row timestamps."""
    return datetime.now(timezone.utc)


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Connection pool settings; only the PostgreSQL driver takes pool sizing arguments."""
    if not database_url.startswith("postgresql"):
        return {"echo": settings.debug}

    return {
        "echo": settings.debug,
        # Connection pool settings optimized for Docker containers
        "pool_size": 10,
        "max_overflow": 20,
        "pool_pre_ping": True,
        "pool_recycle": 3600,
        "pool_timeout": 30,
        "connect_args": {
            "server_settings": {
                "application_name": "rental_listings_api",
            }
        },
    }


engine = create_async_engine(settings.database_url, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all database models.
    Includes common fields: id and created_at.
    """

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
        index=True
    )

    # Set client-side so rows written in the same second still order deterministically
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
        index=True
    )

    def __repr__(self) -> str:
        """String representation of the model."""
        return f"<{self.__class__.__name__}(id={self.id})>"


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency to get database session.
    Yields an async database session and ensures it's closed after use.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def check_session(session: AsyncSession) -> bool:
    """
    Run a trivial query on the given session.
    Returns True if the database answered, False otherwise.
    """
    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def test_database_connection() -> bool:
    """
    Test database connectivity.
    Returns True if connection is successful, False otherwise.
    """
    async with AsyncSessionLocal() as session:
        connected = await check_session(session)
    if connected:
        logger.info("Database connection successful")
    return connected


async def close_db_connection():
    """
    Close database connection.
    This should be called during application shutdown.
    """
    await engine.dispose()
    logger.info("Database connections closed")
