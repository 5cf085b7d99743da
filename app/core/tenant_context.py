"""
Request-scoped tenant binding.

A ``TenantContext`` is created for every request (or administrative
operation) and handed down explicitly. It owns the engine currently used for
queries: the main engine when nothing is bound, or a dedicated tenant engine
while inside ``scoped``.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
import structlog

from app.core.database import engine as default_engine, build_tenant_engine
from app.core.exceptions import TenantConnectionError, TenantContextError, TenantNotBound
from app.models.tenant import Tenant

logger = structlog.get_logger()

T = TypeVar("T")
EngineFactory = Callable[[str], AsyncEngine]


class TenantContext:
    """Binds one tenant database to the active engine for a scoped operation"""

    def __init__(self, main_engine: AsyncEngine = default_engine, engine_factory: EngineFactory = build_tenant_engine):
        self.main_engine = main_engine
        self.engine_factory = engine_factory
        self.engine: AsyncEngine = main_engine
        self.tenant: Optional[Tenant] = None

    @property
    def is_bound(self) -> bool:
        return self.tenant is not None

    def current(self) -> Tenant:
        """Return the bound tenant or fail loudly"""
        if self.tenant is None:
            raise TenantNotBound("No tenant is bound to the current context")
        return self.tenant

    async def switch_to(self, tenant: Tenant) -> None:
        """Point the active engine at the tenant database"""
        # Never reuse a handle from the previous target
        await self._discard_tenant_engine()

        tenant_engine = None
        try:
            tenant_engine = self.engine_factory(tenant.database_name)
            async with tenant_engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except Exception as e:
            if tenant_engine is not None:
                await tenant_engine.dispose()
            logger.error(
                "Tenant database connection failed",
                subdomain=tenant.subdomain,
                database=tenant.database_name,
                error=str(e),
            )
            raise TenantConnectionError(
                f"Could not connect to database for tenant '{tenant.subdomain}'",
                {"subdomain": tenant.subdomain, "database": tenant.database_name},
            ) from e

        self.engine = tenant_engine
        self.tenant = tenant
        logger.debug("Switched to tenant database", subdomain=tenant.subdomain)

    async def switch_to_main(self) -> None:
        """Restore the main engine; no-op when nothing is bound"""
        if self.tenant is None and self.engine is self.main_engine:
            return
        subdomain = self.tenant.subdomain if self.tenant is not None else None
        await self._discard_tenant_engine()
        logger.debug("Switched to main database", subdomain=subdomain)

    async def _discard_tenant_engine(self) -> None:
        tenant_engine = self.engine
        self.engine = self.main_engine
        self.tenant = None
        if tenant_engine is not self.main_engine:
            # Finish disposal even if the surrounding task is being cancelled
            await asyncio.shield(tenant_engine.dispose())

    @asynccontextmanager
    async def scoped(self, tenant: Tenant) -> AsyncIterator["TenantContext"]:
        """Bind ``tenant`` for the duration of the block, restoring main on exit"""
        if self.tenant is not None:
            if self.tenant.id != tenant.id:
                raise TenantContextError(
                    f"Context already bound to tenant '{self.tenant.subdomain}', "
                    f"refusing to rebind to '{tenant.subdomain}'",
                    {"bound": self.tenant.subdomain, "requested": tenant.subdomain},
                )
            # Same tenant: the outermost scope restores main
            yield self
        else:
            try:
                await self.switch_to(tenant)
                yield self
            finally:
                await self.switch_to_main()

    async def run_scoped(self, tenant: Tenant, operation: Callable[["TenantContext"], Awaitable[T]]) -> T:
        """Run ``operation(context)`` with ``tenant`` bound"""
        async with self.scoped(tenant):
            return await operation(self)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session on the active engine"""
        session_maker = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
