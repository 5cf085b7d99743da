from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from typing import List, Optional
import uuid

from app.core.exceptions import TenantNotFound
from app.core.migration_runner import MigrationOptions
from app.middleware.auth import require_admin
from app.middleware.tenant import get_current_tenant
from app.models.tenant import Tenant, TenantStatus
from app.schemas.tenant import (
    BatchMigrationResponse, CurrentTenantResponse, MigrationRequest,
    MigrationResultResponse, TenantCreate, TenantDetailResponse, TenantResponse,
    TenantSettingsUpdate, TenantStatusUpdate,
)
from app.services.tenant_service import TenantService

# Platform administration; mounted under a path that skips tenant resolution
admin_router = APIRouter(dependencies=[Depends(require_admin)])

# Tenant-scoped
router = APIRouter()


def get_tenant_service() -> TenantService:
    return TenantService()


async def get_tenant_or_404(tenant_id: uuid.UUID, service: TenantService) -> Tenant:
    tenant = await service.registry.get(tenant_id)
    if tenant is None:
        raise TenantNotFound(f"Tenant '{tenant_id}' not found", {"tenant_id": str(tenant_id)})
    return tenant


@admin_router.get("", response_model=List[TenantResponse])
async def list_tenants(
    status_filter: Optional[TenantStatus] = Query(None, alias="status"),
    service: TenantService = Depends(get_tenant_service),
):
    """List registered tenants"""
    return await service.registry.list_tenants(status_filter)


@admin_router.post("", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(
    data: TenantCreate,
    service: TenantService = Depends(get_tenant_service),
):
    """Create a tenant with its database and schema"""
    return await service.create_tenant(
        name=data.name,
        subdomain=data.subdomain,
        plan=data.plan,
        status=data.status,
        tenant_settings=data.settings,
    )


@admin_router.post("/migrate", response_model=BatchMigrationResponse)
async def migrate_all_tenants(
    data: MigrationRequest,
    response: Response,
    background: bool = False,
    service: TenantService = Depends(get_tenant_service),
):
    """Migrate every active tenant, inline or as a background task"""
    if background:
        from app.tasks.tenants import migrate_all_tenants as migrate_all_task

        task = migrate_all_task.delay(revision=data.revision, fresh=data.fresh)
        response.status_code = status.HTTP_202_ACCEPTED
        return BatchMigrationResponse(task_id=task.id)

    results = await service.migrate_all_active_tenants(
        MigrationOptions(revision=data.revision, fresh=data.fresh)
    )
    failed = sum(1 for r in results if not r.succeeded)
    return BatchMigrationResponse(
        results=[r.to_dict() for r in results],
        succeeded=len(results) - failed,
        failed=failed,
    )


@admin_router.get("/{tenant_id}", response_model=TenantDetailResponse)
async def get_tenant(
    tenant_id: uuid.UUID,
    service: TenantService = Depends(get_tenant_service),
):
    """Get tenant details"""
    tenant = await get_tenant_or_404(tenant_id, service)
    detail = TenantResponse.model_validate(tenant).model_dump()
    return TenantDetailResponse(**detail, database_exists=await service.database_exists(tenant))


@admin_router.patch("/{tenant_id}/status", response_model=TenantResponse)
async def update_tenant_status(
    tenant_id: uuid.UUID,
    data: TenantStatusUpdate,
    service: TenantService = Depends(get_tenant_service),
):
    """Suspend, reactivate or deactivate a tenant"""
    tenant = await get_tenant_or_404(tenant_id, service)
    return await service.registry.update_status(tenant, data.status)


@admin_router.patch("/{tenant_id}/settings", response_model=TenantResponse)
async def update_tenant_settings(
    tenant_id: uuid.UUID,
    data: TenantSettingsUpdate,
    service: TenantService = Depends(get_tenant_service),
):
    tenant = await get_tenant_or_404(tenant_id, service)
    return await service.update_settings(tenant, data.settings, merge=data.merge)


@admin_router.post("/{tenant_id}/migrate", response_model=MigrationResultResponse)
async def migrate_tenant(
    tenant_id: uuid.UUID,
    data: MigrationRequest,
    response: Response,
    background: bool = False,
    service: TenantService = Depends(get_tenant_service),
):
    """Apply pending migrations to one tenant"""
    tenant = await get_tenant_or_404(tenant_id, service)
    if background:
        from app.tasks.tenants import migrate_tenant as migrate_tenant_task

        task = migrate_tenant_task.delay(tenant.subdomain, revision=data.revision, fresh=data.fresh)
        response.status_code = status.HTTP_202_ACCEPTED
        return MigrationResultResponse(
            tenant_id=str(tenant.id), subdomain=tenant.subdomain, succeeded=False, task_id=task.id
        )

    result = await service.migrate_tenant(
        tenant, MigrationOptions(revision=data.revision, fresh=data.fresh)
    )
    if not result.succeeded:
        response.status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return result.to_dict()


@admin_router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(
    tenant_id: uuid.UUID,
    service: TenantService = Depends(get_tenant_service),
):
    """Drop the tenant database and remove the tenant"""
    tenant = await get_tenant_or_404(tenant_id, service)
    if not await service.delete_tenant(tenant):
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete tenant; the registry row was kept for manual cleanup",
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/tenant", response_model=CurrentTenantResponse)
async def read_current_tenant(tenant: Tenant = Depends(get_current_tenant)):
    """Tenant the request was routed to"""
    return tenant
