from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import select, delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from app.core.database import async_session_maker
from app.core.exceptions import DuplicateSubdomain, TenantNotFound
from app.models.base import utcnow
from app.models.tenant import Tenant, TenantStatus

logger = structlog.get_logger()


class TenantRegistry:
    """Tenant rows in the main database.

    Each call runs in its own short session, so returned tenants are detached
    snapshots that can be handed to a ``TenantContext`` freely.
    """

    def __init__(self, session_maker: async_sessionmaker = async_session_maker):
        self.session_maker = session_maker

    async def get(self, tenant_id) -> Optional[Tenant]:
        """Get tenant by ID"""
        if isinstance(tenant_id, str):
            try:
                tenant_id = uuid.UUID(tenant_id)
            except ValueError:
                return None
        async with self.session_maker() as session:
            return await session.get(Tenant, tenant_id)

    async def get_by_subdomain(self, subdomain: str) -> Optional[Tenant]:
        """Get tenant by subdomain, whatever its status"""
        async with self.session_maker() as session:
            result = await session.execute(
                select(Tenant).where(Tenant.subdomain == subdomain)
            )
            return result.scalar_one_or_none()

    async def subdomain_exists(self, subdomain: str) -> bool:
        async with self.session_maker() as session:
            result = await session.execute(
                select(Tenant.id).where(Tenant.subdomain == subdomain)
            )
            return result.first() is not None

    async def list_tenants(self, status: Optional[TenantStatus] = None) -> List[Tenant]:
        async with self.session_maker() as session:
            query = select(Tenant).order_by(Tenant.created_at, Tenant.subdomain)
            if status is not None:
                query = query.where(Tenant.status == status)
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_migratable(self) -> List[Tenant]:
        """Active tenants whose database has been provisioned"""
        async with self.session_maker() as session:
            result = await session.execute(
                select(Tenant)
                .where(
                    Tenant.status == TenantStatus.ACTIVE,
                    Tenant.provisioned_at.is_not(None),
                )
                .order_by(Tenant.created_at, Tenant.subdomain)
            )
            return list(result.scalars().all())

    async def add(self, tenant: Tenant) -> Tenant:
        """Insert a registry row"""
        async with self.session_maker() as session:
            session.add(tenant)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise DuplicateSubdomain(
                    f"Tenant with subdomain '{tenant.subdomain}' already exists",
                    {"subdomain": tenant.subdomain},
                ) from e
            return tenant

    async def mark_provisioned(self, tenant: Tenant) -> Tenant:
        return await self._update(tenant, provisioned_at=utcnow())

    async def touch(self, tenant: Tenant) -> None:
        """Record the last time the tenant was resolved"""
        now = utcnow()
        async with self.session_maker() as session:
            await session.execute(
                update(Tenant).where(Tenant.id == tenant.id).values(last_accessed_at=now)
            )
            await session.commit()
        tenant.last_accessed_at = now

    async def update_status(self, tenant: Tenant, status: TenantStatus) -> Tenant:
        async with self.session_maker() as session:
            row = await self._load(session, tenant)
            row.transition_to(status)
            await session.commit()
            logger.info("Tenant status changed", subdomain=row.subdomain, status=row.status.value)
            return row

    async def update_settings(self, tenant: Tenant, values: Dict[str, Any], merge: bool = True) -> Tenant:
        async with self.session_maker() as session:
            row = await self._load(session, tenant)
            current = dict(row.settings or {}) if merge else {}
            current.update(values)
            # Reassign so the JSON column is flagged dirty
            row.settings = current
            await session.commit()
            return row

    async def delete(self, tenant: Tenant) -> bool:
        """Remove the registry row; True when a row was deleted"""
        async with self.session_maker() as session:
            result = await session.execute(delete(Tenant).where(Tenant.id == tenant.id))
            await session.commit()
            return result.rowcount > 0

    async def _update(self, tenant: Tenant, **values) -> Tenant:
        async with self.session_maker() as session:
            row = await self._load(session, tenant)
            for key, value in values.items():
                setattr(row, key, value)
            await session.commit()
            return row

    async def _load(self, session: AsyncSession, tenant: Tenant) -> Tenant:
        row = await session.get(Tenant, tenant.id)
        if row is None:
            raise TenantNotFound(
                f"Tenant '{tenant.subdomain}' no longer exists",
                {"subdomain": tenant.subdomain},
            )
        return row
