"""
Database session configuration
Async PostgreSQL connection using SQLAlchemy 2.0
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from agentledger.config import Settings

logger = logging.getLogger(__name__)

# Base for models
Base = declarative_base()


class Database:
    """Owns the engine and session factory for the process lifetime"""

    def __init__(
        self,
        url: str,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 10.0,
        command_timeout: float = 10.0,
        echo: bool = False,
    ):
        # asyncpg bounds every statement with command_timeout
        connect_args = {"command_timeout": command_timeout} if "+asyncpg" in url else {}
        # Local SQLite files keep the dialect's default pool
        pool_args = {} if url.startswith("sqlite") else {
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
        }

        self.engine = create_async_engine(
            url,
            echo=echo,  # Set to True for SQL logging
            pool_pre_ping=True,
            connect_args=connect_args,
            **pool_args
        )

        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            settings.database_url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            command_timeout=settings.db_command_timeout,
        )

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        async with self.session_factory() as session:
            yield session

    async def create_tables(self):
        """Create missing tables (local setup only)"""
        # Import models so they register on Base.metadata
        from agentledger.database import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Ledger tables ensured")

    async def ping(self) -> bool:
        try:
            async with self.session() as session:
                await session.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning(f"⚠️ Database ping failed: {e}")
            return False

    async def dispose(self):
        await self.engine.dispose()
        logger.info("Database engine disposed")
