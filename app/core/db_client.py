"""
Async database connection management using SQLAlchemy 2.0.

Supports both:
- PostgreSQL through asyncpg (production)
- SQLite through aiosqlite (local development and tests)

Note: Uses per-event-loop engine management so the same manager works from
the main loop and from loops created by test runners or worker threads.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Dict, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    AsyncEngine,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, StaticPool

from app.core.config import settings
from app.core.logging import get_db_logger
from app.models.db import Base

logger = get_db_logger()


class DatabaseManager:
    """
    Manages async database engines.

    Implements singleton pattern with per-event-loop resource management.
    """

    _instance: Optional["DatabaseManager"] = None
    _initialized: bool = False

    # Per-loop resources: maps loop_id -> resource
    _engines: Dict[int, AsyncEngine] = {}
    _session_factories: Dict[int, async_sessionmaker] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True

    def _get_loop_id(self) -> int:
        """Get current event loop ID for per-loop resource tracking."""
        try:
            loop = asyncio.get_running_loop()
            return id(loop)
        except RuntimeError:
            return 0

    @property
    def database_url(self) -> str:
        if settings.DATABASE_URL:
            return settings.DATABASE_URL
        return (
            f"postgresql+asyncpg://{settings.DATABASE_USER}:{settings.DATABASE_PASSWORD}"
            f"@{settings.DATABASE_HOST}:{settings.DATABASE_PORT}/{settings.DATABASE_NAME}"
        )

    def _setup_engine_for_loop(self, loop_id: int) -> None:
        """Initialize engine and session factory for the current event loop."""
        if loop_id in self._engines:
            return

        engine = self._create_engine()
        self._engines[loop_id] = engine
        self._session_factories[loop_id] = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        logger.info(
            "Database engine initialized",
            loop_id=loop_id,
            dialect=engine.dialect.name,
            pool_size=settings.DB_POOL_SIZE,
        )

    def _create_engine(self) -> AsyncEngine:
        """Create engine with direct connection URL."""
        database_url = self.database_url

        if database_url.startswith("sqlite"):
            # One shared connection keeps in-memory databases alive
            logger.info("Creating SQLite database connection", url=database_url)
            return create_async_engine(
                database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
                echo=settings.DB_ECHO,
            )

        # Log connection info without password - NEVER log credentials
        logger.info(
            "Creating direct database connection",
            host=settings.DATABASE_HOST,
            port=settings.DATABASE_PORT,
            database=settings.DATABASE_NAME,
            user=settings.DATABASE_USER,
        )
        return create_async_engine(
            database_url,
            poolclass=AsyncAdaptedQueuePool,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
            echo=settings.DB_ECHO,
        )

    @property
    def engine(self) -> AsyncEngine:
        """Get the async engine for the current event loop."""
        loop_id = self._get_loop_id()
        if loop_id not in self._engines:
            raise RuntimeError(
                "Engine not initialized for this event loop. "
                "Use 'async with db.session()' or 'await db.get_engine_async()' first."
            )
        return self._engines[loop_id]

    async def get_engine_async(self) -> AsyncEngine:
        """Get the async engine, initializing for the current event loop if necessary."""
        loop_id = self._get_loop_id()
        self._setup_engine_for_loop(loop_id)
        return self._engines[loop_id]

    async def test_connection(self, timeout: float = 15.0) -> bool:
        """Test database connectivity with timeout."""
        engine = await self.get_engine_async()

        try:
            async with asyncio.timeout(timeout):
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
            logger.debug("Database connection test successful")
            return True
        except asyncio.TimeoutError:
            logger.error("Database connection test timed out", timeout=timeout)
            return False
        except Exception as e:
            logger.error("Database connection test failed", error=str(e))
            return False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Get an async session with automatic commit/rollback.

        Usage:
            async with db.session() as session:
                result = await session.execute(...)
        """
        loop_id = self._get_loop_id()
        self._setup_engine_for_loop(loop_id)

        session = self._session_factories[loop_id]()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def create_tables(self):
        """Create all tables (for development/testing)."""
        engine = await self.get_engine_async()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created")

    async def drop_tables(self):
        """Drop all tables (for testing only)."""
        engine = await self.get_engine_async()
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.info("Database tables dropped")

    async def close(self):
        """Dispose the engine for the CURRENT event loop only."""
        loop_id = self._get_loop_id()

        engine = self._engines.pop(loop_id, None)
        self._session_factories.pop(loop_id, None)
        if engine is not None:
            await engine.dispose()
            logger.info("Database connections closed for current loop")


# Global database manager instance
db = DatabaseManager()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency injection helper for FastAPI."""
    async with db.session() as session:
        yield session
