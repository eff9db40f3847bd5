"""
Shared repository plumbing
Every backend failure leaves the repository as a StorageError
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agentledger.database.postgres_client import Database
from agentledger.errors import StorageError

logger = logging.getLogger(__name__)

STORAGE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


class BaseRepository:

    def __init__(self, database: Database):
        self.database = database

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.database.session() as session:
                yield session
        except STORAGE_ERRORS as e:
            logger.error(f"❌ Ledger {operation} failed: {e}")
            raise StorageError(f"Ledger {operation} failed") from e
