import asyncio
from typing import List, Optional
import structlog

from app.core.celery_app import celery_app
from app.core.database import engine
from app.core.exceptions import TenantNotFound
from app.core.migration_runner import MigrationOptions
from app.services.tenant_service import TenantService

logger = structlog.get_logger()


async def _migrate_all(options: MigrationOptions, service: Optional[TenantService] = None) -> List[dict]:
    service = service or TenantService()
    try:
        results = await service.migrate_all_active_tenants(options)
        return [r.to_dict() for r in results]
    finally:
        # Pooled connections belong to this task's event loop
        await engine.dispose()


async def _migrate_one(subdomain: str, options: MigrationOptions, service: Optional[TenantService] = None) -> dict:
    service = service or TenantService()
    try:
        tenant = await service.registry.get_by_subdomain(subdomain)
        if tenant is None:
            raise TenantNotFound(f"Tenant '{subdomain}' not found", {"subdomain": subdomain})
        result = await service.migrate_tenant(tenant, options)
        return result.to_dict()
    finally:
        await engine.dispose()


@celery_app.task(name="app.tasks.tenants.migrate_all_tenants")
def migrate_all_tenants(revision: str = "head", fresh: bool = False):
    """Apply pending migrations to every active tenant"""
    results = asyncio.run(_migrate_all(MigrationOptions(revision=revision, fresh=fresh)))
    failed = [r["subdomain"] for r in results if not r["succeeded"]]
    logger.info("Background tenant migration finished", total=len(results), failed=failed)
    return {"results": results, "failed": len(failed), "succeeded": len(results) - len(failed)}


@celery_app.task(name="app.tasks.tenants.migrate_tenant")
def migrate_tenant(subdomain: str, revision: str = "head", fresh: bool = False):
    """Apply pending migrations to one tenant"""
    return asyncio.run(_migrate_one(subdomain, MigrationOptions(revision=revision, fresh=fresh)))
