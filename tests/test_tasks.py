"""Tests for background tenant tasks"""

import pytest
from unittest.mock import AsyncMock, patch

from app.core.exceptions import TenantNotFound
from app.core.migration_runner import MigrationOptions
from app.tasks import tenants as tasks


@pytest.mark.asyncio
async def test_migrate_all(service, runner):
    await service.create_tenant("Shop A", "shop-a")
    await service.create_tenant("Shop B", "shop-b")
    runner.fail_for.add("shop-b")

    results = await tasks._migrate_all(MigrationOptions(), service=service)

    assert [(r["subdomain"], r["succeeded"]) for r in results] == [("shop-a", True), ("shop-b", False)]


@pytest.mark.asyncio
async def test_migrate_one(service):
    tenant = await service.create_tenant("Shop A", "shop-a")

    result = await tasks._migrate_one("shop-a", MigrationOptions(), service=service)

    assert result == {"tenant_id": str(tenant.id), "subdomain": "shop-a", "succeeded": True, "error": None}


@pytest.mark.asyncio
async def test_migrate_one_unknown_tenant(service):
    with pytest.raises(TenantNotFound):
        await tasks._migrate_one("nobody", MigrationOptions(), service=service)


def test_migrate_all_task_summary():
    results = [
        {"tenant_id": "1", "subdomain": "shop-a", "succeeded": True, "error": None},
        {"tenant_id": "2", "subdomain": "shop-b", "succeeded": False, "error": "boom"},
    ]
    with patch.object(tasks, "_migrate_all", AsyncMock(return_value=results)) as migrate_all:
        summary = tasks.migrate_all_tenants(revision="head", fresh=True)

    assert summary["succeeded"] == 1
    assert summary["failed"] == 1
    options = migrate_all.call_args.args[0]
    assert options.fresh is True
