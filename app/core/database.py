from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.engine import make_url, URL
from sqlalchemy.pool import NullPool
from typing import Any, Dict
import structlog

from app.core.config import settings

logger = structlog.get_logger()


def engine_options(url: URL) -> Dict[str, Any]:
    """Pool options for the main engine; SQLite does not take pool sizing"""
    options: Dict[str, Any] = {"echo": settings.ENVIRONMENT == "development"}
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.DATABASE_POOL_SIZE,
            max_overflow=settings.DATABASE_MAX_OVERFLOW,
            pool_pre_ping=True,
        )
    return options


# Main (registry) database
_main_url = make_url(settings.DATABASE_URL)
engine = create_async_engine(_main_url, **engine_options(_main_url))

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Registry tables live on Base, tenant tables on TenantBase
Base = declarative_base()
TenantBase = declarative_base()


def tenant_database_url(database_name: str) -> URL:
    """URL of a tenant database, derived from the tenant URL template"""
    template = make_url(settings.TENANT_DATABASE_URL or settings.DATABASE_URL)
    return template.set(database=database_name)


def build_tenant_engine(database_name: str) -> AsyncEngine:
    """Create a dedicated engine for one tenant database.

    NullPool: connections are closed on release, so disposing the engine
    leaves nothing behind that another tenant could pick up.
    """
    return create_async_engine(
        tenant_database_url(database_name),
        poolclass=NullPool,
        echo=settings.ENVIRONMENT == "development",
    )


async def init_db():
    """Create registry tables in the main database"""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise
