"""
Services handed to extensions.

Extensions get this module as `context.services` and build the services
they need from `context.database`.
"""

import logging
import time
from typing import Any, Dict, List, Optional

from sqlalchemy import MetaData, Table, func, select, text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

# Track service start time
START_TIME = time.time()


class ItemsService:
    """Basic CRUD over one table, reflected on first use"""

    def __init__(self, collection: str, database: AsyncEngine):
        self.collection = collection
        self.database = database
        self._table: Optional[Table] = None

    async def _get_table(self) -> Table:
        if self._table is None:
            metadata = MetaData()
            async with self.database.connect() as conn:
                self._table = await conn.run_sync(
                    lambda sync_conn: Table(self.collection, metadata, autoload_with=sync_conn)
                )
        return self._table

    def _primary_key(self, table: Table):
        return list(table.primary_key.columns)[0]

    async def read_many(self, limit: int = 100, offset: int = 0) -> List[Dict[str, Any]]:
        table = await self._get_table()
        query = select(table).limit(limit).offset(offset)
        async with self.database.connect() as conn:
            result = await conn.execute(query)
            return [dict(row) for row in result.mappings()]

    async def read_one(self, key: Any) -> Optional[Dict[str, Any]]:
        table = await self._get_table()
        query = select(table).where(self._primary_key(table) == key)
        async with self.database.connect() as conn:
            row = (await conn.execute(query)).mappings().first()
            return dict(row) if row else None

    async def create_one(self, data: Dict[str, Any]) -> Any:
        table = await self._get_table()
        async with self.database.begin() as conn:
            result = await conn.execute(table.insert().values(**data))
            return result.inserted_primary_key[0] if result.inserted_primary_key else None

    async def delete_one(self, key: Any) -> bool:
        table = await self._get_table()
        async with self.database.begin() as conn:
            result = await conn.execute(table.delete().where(self._primary_key(table) == key))
            return result.rowcount > 0

    async def count(self) -> int:
        table = await self._get_table()
        async with self.database.connect() as conn:
            return (await conn.execute(select(func.count()).select_from(table))).scalar_one()


class ServerService:
    """Health and info about the running service"""

    def __init__(self, database: AsyncEngine):
        self.database = database

    async def database_status(self) -> str:
        try:
            async with self.database.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return "connected"
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return "disconnected"

    async def health(self) -> Dict[str, Any]:
        database = await self.database_status()
        return {
            "status": "ok" if database == "connected" else "warn",
            "database": database,
        }

    def info(self) -> Dict[str, Any]:
        return {
            "service": "Lodestar Core",
            "version": "0.1.0",
            "uptime_seconds": time.time() - START_TIME,
        }
