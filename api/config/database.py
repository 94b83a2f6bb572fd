"""
Database configuration with SQLAlchemy async support
"""
import asyncio
from typing import AsyncGenerator, Optional
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from config.settings import get_settings
from utils.logging import get_logger
from models.database.base import Base

logger = get_logger(__name__)


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """Create an async engine with driver-appropriate pool settings"""
    if database_url.startswith("sqlite"):
        engine_kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
            engine_kwargs["poolclass"] = StaticPool
        engine = create_async_engine(database_url, echo=echo, **engine_kwargs)

        @event.listens_for(engine.sync_engine, "connect")
        def enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA foreign_keys=ON")
            finally:
                cursor.close()

        return engine

    return create_async_engine(
        database_url,
        pool_pre_ping=True,
        echo=echo,
        pool_size=5,
        max_overflow=5,
        pool_recycle=3600,
        pool_timeout=30,
        pool_use_lifo=True,
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False
    )


class DatabaseManager:
    """Async database manager owning the process-wide engine and session factory"""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.async_session_factory: Optional[async_sessionmaker] = None
        self._initialized = False

    async def initialize(self, database_url: Optional[str] = None):
        """Initialize database engine and session factory"""
        if self._initialized:
            return

        settings = get_settings()
        try:
            self.engine = build_engine(database_url or settings.database_url, echo=False)

            @event.listens_for(self.engine.sync_engine, "invalidate")
            def receive_invalidate(dbapi_connection, connection_record, exception):
                logger.warning(f"Connection invalidated: {exception}")

            self.async_session_factory = build_session_factory(self.engine)

            self._initialized = True
            logger.info("Database initialized successfully")

        except SQLAlchemyError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def test_connection(self) -> bool:
        """Test database connection"""
        if not self.engine:
            return False
        try:
            async with self.engine.begin() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    async def create_tables(self):
        """Create all database tables"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
        except SQLAlchemyError as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    async def close(self):
        """Close database connections properly"""
        if self.engine:
            try:
                await asyncio.wait_for(self.engine.dispose(), timeout=30.0)
                logger.info("Database connections closed")
            except asyncio.TimeoutError:
                logger.warning("Database close operation timed out")
            finally:
                self.engine = None
                self.async_session_factory = None
                self._initialized = False


db_manager = DatabaseManager()


async def init_db():
    """Initialize database on application startup"""
    # Import models so their tables are registered on Base.metadata
    import models.database.account  # noqa: F401

    await db_manager.initialize()
    await db_manager.create_tables()


async def close_db():
    """Close database on application shutdown"""
    await db_manager.close()


@asynccontextmanager
async def get_db_context():
    """Context manager for a database session; rolls back on error"""
    if not db_manager.initialized:
        await db_manager.initialize()

    session = db_manager.async_session_factory()
    try:
        yield session
        if session.in_transaction():
            await session.commit()

    except asyncio.CancelledError:
        logger.warning("Database session cancelled")
        if session.in_transaction():
            await session.rollback()
        raise

    except SQLAlchemyError as e:
        logger.error(f"Database session error: {e}")
        if session.in_transaction():
            await session.rollback()
        raise

    except Exception:
        if session.in_transaction():
            await session.rollback()
        raise

    finally:
        await session.close()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting database session"""
    async with get_db_context() as session:
        yield session


async def test_connection() -> bool:
    """Test database connection health"""
    return await db_manager.test_connection()
