"""
Database Connection Management
Async SQLAlchemy engine (SQLite via aiosqlite by default)
"""
from pathlib import Path
from typing import Optional, AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.pool import StaticPool
from loguru import logger

from .models import Base
from config import settings

# Async engine
_engine: Optional[AsyncEngine] = None
_session_factory = None


def _sqlite_path(db_url: str) -> Optional[Path]:
    prefix = "sqlite+aiosqlite:///"
    if db_url.startswith(prefix) and ":memory:" not in db_url:
        return Path(db_url[len(prefix):])
    return None


def get_engine() -> AsyncEngine:
    """Get or create async engine"""
    global _engine
    if _engine is None:
        db_url = settings.DATABASE_URL
        logger.info(f"Creating database engine: {db_url}")

        if db_url.startswith("sqlite"):
            db_path = _sqlite_path(db_url)
            if db_path is not None:
                # Ensure data directory exists
                db_path.parent.mkdir(parents=True, exist_ok=True)
            _engine = create_async_engine(
                db_url,
                echo=False,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            _engine = create_async_engine(db_url, echo=False, pool_pre_ping=True)
    return _engine


def get_session_factory():
    """Get or create session factory"""
    global _session_factory
    if _session_factory is None:
        engine = get_engine()
        _session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _session_factory


async def init_db():
    """Initialize database - create tables if not exist"""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialized successfully")


async def check_connection() -> bool:
    """Run a trivial query to verify the database is reachable"""
    try:
        engine = get_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False


async def close_db():
    """Close database connection"""
    global _engine, _session_factory
    if _engine:
        await _engine.dispose()
        _engine = None
        _session_factory = None
    logger.info("Database connection closed")


@asynccontextmanager
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Get database session as async context manager"""
    session_factory = get_session_factory()
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            await session.rollback()
            logger.error(f"Database error: {e}")
            raise
        finally:
            await session.close()
