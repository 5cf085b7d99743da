from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Optional
import uuid

import structlog

from app.core.config import settings
from app.core.exceptions import (
    DuplicateSubdomain, InvalidSubdomain, ProvisioningFailed,
    SchemaApplicationFailed, TenantRegistryError,
)
from app.core.migration_runner import MigrationOptions, get_migration_runner
from app.core.provisioning import DatabaseProvisioner
from app.core.subdomain import validate_subdomain
from app.core.tenant_context import TenantContext
from app.models.tenant import Tenant, TenantStatus
from app.services.tenant_registry import TenantRegistry

logger = structlog.get_logger()


@dataclass
class MigrationResult:
    tenant_id: str
    subdomain: str
    succeeded: bool
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TenantService:
    """Tenant lifecycle: provisioning, migrations, status changes and deletion"""

    def __init__(
        self,
        registry: Optional[TenantRegistry] = None,
        provisioner: Optional[DatabaseProvisioner] = None,
        migration_runner=None,
        context_factory: Optional[Callable[[], TenantContext]] = None,
    ):
        self.registry = registry or TenantRegistry()
        self.provisioner = provisioner or DatabaseProvisioner()
        self.migration_runner = migration_runner or get_migration_runner()
        self.context_factory = context_factory or TenantContext

    def validate_subdomain(self, subdomain: str) -> bool:
        return validate_subdomain(subdomain)

    def generate_database_name(self) -> str:
        return f"{settings.TENANT_DATABASE_PREFIX}{uuid.uuid4().hex}"

    async def create_tenant(
        self,
        name: str,
        subdomain: str,
        plan: Optional[str] = None,
        status: TenantStatus = TenantStatus.ACTIVE,
        tenant_settings: Optional[Dict[str, Any]] = None,
    ) -> Tenant:
        """Create a tenant with its own database and schema.

        Three phases: registry row, database, schema. A failure in a later
        phase rolls back the earlier ones, so no row is left pointing at a
        missing or unschematized database.
        """
        if not self.validate_subdomain(subdomain):
            raise InvalidSubdomain(
                "Invalid subdomain format. Use only lowercase letters, numbers, "
                "and hyphens (3-63 characters), not a reserved name.",
                {"subdomain": subdomain},
            )

        if await self.registry.subdomain_exists(subdomain):
            raise DuplicateSubdomain(
                f"Tenant with subdomain '{subdomain}' already exists",
                {"subdomain": subdomain},
            )

        tenant = Tenant(
            name=name,
            subdomain=subdomain,
            database_name=self.generate_database_name(),
            status=TenantStatus(status),
            plan=plan,
            settings=tenant_settings or {},
        )

        # Phase 1: registry row
        try:
            tenant = await self.registry.add(tenant)
        except DuplicateSubdomain:
            raise
        except Exception as e:
            logger.error("Tenant registry insert failed", subdomain=subdomain, error=str(e))
            raise TenantRegistryError(
                f"Failed to register tenant '{subdomain}'", {"subdomain": subdomain, "error": str(e)}
            ) from e

        log = logger.bind(subdomain=subdomain, database=tenant.database_name)

        # Phase 2: database
        try:
            await self.provisioner.create_database(tenant.database_name)
        except Exception as e:
            log.error("Tenant database provisioning failed", error=str(e))
            await self._discard_registry_row(tenant)
            raise ProvisioningFailed(
                "Failed to create tenant database",
                {"subdomain": subdomain, "database": tenant.database_name, "error": str(e)},
            ) from e

        # Phase 3: schema
        try:
            await self._apply_schema(tenant, MigrationOptions())
        except Exception as e:
            log.error("Tenant schema application failed", error=str(e))
            rollback = await self._rollback_database(tenant, log)
            raise SchemaApplicationFailed(
                "Failed to run tenant migrations",
                {
                    "subdomain": subdomain,
                    "database": tenant.database_name,
                    "error": str(e),
                    "rollback": rollback,
                },
            ) from e

        try:
            tenant = await self.registry.mark_provisioned(tenant)
        except Exception as e:
            log.error("Marking tenant provisioned failed", error=str(e))
            rollback = await self._rollback_database(tenant, log)
            raise TenantRegistryError(
                f"Failed to register tenant '{subdomain}' as provisioned",
                {
                    "subdomain": subdomain,
                    "database": tenant.database_name,
                    "error": str(e),
                    "rollback": rollback,
                },
            ) from e

        log.info("Tenant created", tenant_id=str(tenant.id), status=TenantStatus(tenant.status).value)
        return tenant

    async def delete_tenant(self, tenant: Tenant) -> bool:
        """Drop the tenant database, then its registry row.

        Returns False when the drop fails; the row is kept so the leftover
        database can be found and cleaned up by hand.
        """
        try:
            await self.provisioner.drop_database(tenant.database_name)
        except Exception as e:
            logger.error(
                "Failed to delete tenant database",
                tenant_id=str(tenant.id),
                subdomain=tenant.subdomain,
                database=tenant.database_name,
                error=str(e),
            )
            return False

        try:
            await self.registry.delete(tenant)
        except Exception as e:
            logger.error(
                "Tenant database dropped but registry row could not be deleted",
                tenant_id=str(tenant.id),
                subdomain=tenant.subdomain,
                error=str(e),
            )
            return False

        logger.info("Tenant deleted", tenant_id=str(tenant.id), subdomain=tenant.subdomain)
        return True

    async def migrate_tenant(self, tenant: Tenant, options: Optional[MigrationOptions] = None) -> MigrationResult:
        """Apply pending migrations to one tenant; failures are reported, not raised"""
        options = options or MigrationOptions()
        try:
            await self._apply_schema(tenant, options)
        except Exception as e:
            logger.error("Tenant migration failed", subdomain=tenant.subdomain, error=str(e))
            return MigrationResult(str(tenant.id), tenant.subdomain, False, str(e))
        return MigrationResult(str(tenant.id), tenant.subdomain, True)

    async def migrate_all_active_tenants(self, options: Optional[MigrationOptions] = None) -> List[MigrationResult]:
        """Migrate every active tenant, one at a time"""
        tenants = await self.registry.list_migratable()
        if not tenants:
            logger.info("No active tenants found")
            return []

        logger.info("Starting tenant migrations", count=len(tenants))
        results = []
        for tenant in tenants:
            results.append(await self.migrate_tenant(tenant, options))

        failed = [r.subdomain for r in results if not r.succeeded]
        logger.info(
            "Tenant migration summary",
            succeeded=len(results) - len(failed),
            failed=len(failed),
            failed_tenants=failed,
        )
        return results

    async def suspend(self, tenant: Tenant) -> Tenant:
        return await self.registry.update_status(tenant, TenantStatus.SUSPENDED)

    async def activate(self, tenant: Tenant) -> Tenant:
        return await self.registry.update_status(tenant, TenantStatus.ACTIVE)

    async def deactivate(self, tenant: Tenant) -> Tenant:
        return await self.registry.update_status(tenant, TenantStatus.INACTIVE)

    async def update_settings(self, tenant: Tenant, values: Dict[str, Any], merge: bool = True) -> Tenant:
        return await self.registry.update_settings(tenant, values, merge=merge)

    async def database_exists(self, tenant: Tenant) -> bool:
        try:
            return await self.provisioner.database_exists(tenant.database_name)
        except Exception as e:
            logger.warning("Tenant database existence check failed", subdomain=tenant.subdomain, error=str(e))
            return False

    async def _apply_schema(self, tenant: Tenant, options: MigrationOptions) -> None:
        context = self.context_factory()
        await context.run_scoped(
            tenant, lambda ctx: self.migration_runner.apply(ctx, options)
        )

    async def _discard_registry_row(self, tenant: Tenant) -> bool:
        try:
            await self.registry.delete(tenant)
        except Exception as e:
            logger.error(
                "Rollback of tenant registry row failed",
                subdomain=tenant.subdomain,
                error=str(e),
            )
            return False
        return True

    async def _rollback_database(self, tenant: Tenant, log) -> str:
        """Drop a provisioned database and its row; keep the row if the drop fails"""
        try:
            await self.provisioner.drop_database(tenant.database_name)
        except Exception as e:
            log.error("Rollback drop of tenant database failed", error=str(e))
            return "incomplete"
        if not await self._discard_registry_row(tenant):
            return "incomplete"
        return "complete"
