from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
import structlog

from app.core.database import engine as default_engine

logger = structlog.get_logger()


class DatabaseProvisioner:
    """Create and drop tenant databases through the main connection"""

    def __init__(self, engine: AsyncEngine = default_engine):
        self.engine = engine

    def _quote(self, database_name: str) -> str:
        return self.engine.dialect.identifier_preparer.quote(database_name)

    async def _execute_autocommit(self, statement: str):
        # CREATE/DROP DATABASE cannot run inside a transaction block
        async with self.engine.connect() as conn:
            conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
            await conn.execute(text(statement))

    async def create_database(self, database_name: str) -> None:
        """Create tenant database"""
        await self._execute_autocommit(f"CREATE DATABASE {self._quote(database_name)}")
        logger.info("Created tenant database", database=database_name)

    async def drop_database(self, database_name: str) -> None:
        """Drop tenant database and all data"""
        await self._execute_autocommit(f"DROP DATABASE IF EXISTS {self._quote(database_name)}")
        logger.info("Dropped tenant database", database=database_name)

    async def database_exists(self, database_name: str) -> bool:
        async with self.engine.connect() as conn:
            result = await conn.execute(
                text("SELECT 1 FROM pg_database WHERE datname = :name"),
                {"name": database_name},
            )
            return result.first() is not None
