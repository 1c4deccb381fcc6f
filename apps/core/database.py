"""
Database engine, sessions and schema overview
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from config import config

logger = logging.getLogger(__name__)

engine: AsyncEngine = create_async_engine(config.database.url, echo=config.database.echo)
AsyncSessionLocal = async_sessionmaker(engine, expire_on_commit=False)


def get_database() -> AsyncEngine:
    """Return the shared engine handed to extensions"""
    return engine


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session"""
    async with AsyncSessionLocal() as session:
        yield session


def _read_schema(sync_conn) -> Dict[str, List[Dict[str, Any]]]:
    inspector = inspect(sync_conn)
    overview: Dict[str, List[Dict[str, Any]]] = {}
    for table in inspector.get_table_names():
        overview[table] = [
            {
                "name": column["name"],
                "type": str(column["type"]),
                "nullable": column.get("nullable", True),
            }
            for column in inspector.get_columns(table)
        ]
    return overview


async def get_schema(database: Optional[AsyncEngine] = None) -> Dict[str, List[Dict[str, Any]]]:
    """
    Return a table -> columns overview of the database.

    Extensions receive this as `get_schema` in their context.
    """
    database = database or engine
    async with database.connect() as conn:
        return await conn.run_sync(_read_schema)
