"""Tests for tenant schema runners"""

import pytest
from sqlalchemy import text

from app.core.exceptions import TenantNotBound
from app.core.migration_runner import (
    AlembicMigrationRunner, MetadataMigrationRunner, MigrationOptions,
    TENANT_MIGRATIONS_DIR, get_migration_runner,
)


async def tables(context):
    async with context.engine.connect() as conn:
        result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'"))
        return {row[0] for row in result}


class TestAlembicRunner:

    @pytest.mark.asyncio
    async def test_upgrade_head(self, context_factory, tenant_factory):
        tenant = await tenant_factory("shop1")
        context = context_factory()

        async with context.scoped(tenant):
            await AlembicMigrationRunner().apply(context)
            assert {"users", "alembic_version"} <= await tables(context)
            async with context.engine.connect() as conn:
                version = (await conn.execute(text("SELECT version_num FROM alembic_version"))).scalar_one()
        assert version == "0001"

    @pytest.mark.asyncio
    async def test_upgrade_is_repeatable(self, context_factory, tenant_factory):
        tenant = await tenant_factory("shop1")
        context = context_factory()
        runner = AlembicMigrationRunner()

        async with context.scoped(tenant):
            await runner.apply(context)
            await runner.apply(context)
            assert "users" in await tables(context)

    @pytest.mark.asyncio
    async def test_fresh_rebuilds_schema(self, context_factory, tenant_factory):
        tenant = await tenant_factory("shop1")
        context = context_factory()
        runner = AlembicMigrationRunner()

        async with context.scoped(tenant):
            await runner.apply(context)
            async with context.session() as session:
                await session.execute(text(
                    "INSERT INTO users (id, email, first_name, last_name, is_active, created_at, updated_at) "
                    "VALUES ('00000000000000000000000000000001', 'a@b.com', 'A', 'B', 1, "
                    "'2025-01-01 00:00:00', '2025-01-01 00:00:00')"
                ))

            await runner.apply(context, MigrationOptions(fresh=True))

            async with context.engine.connect() as conn:
                count = (await conn.execute(text("SELECT count(*) FROM users"))).scalar_one()
        assert count == 0

    @pytest.mark.asyncio
    async def test_requires_bound_context(self, context_factory):
        with pytest.raises(TenantNotBound):
            await AlembicMigrationRunner().apply(context_factory())

    def test_config_points_at_packaged_scripts(self):
        config = AlembicMigrationRunner().make_config()
        assert config.get_main_option("script_location") == str(TENANT_MIGRATIONS_DIR)
        assert (TENANT_MIGRATIONS_DIR / "versions").is_dir()


class TestMetadataRunner:

    @pytest.mark.asyncio
    async def test_creates_tables(self, context_factory, tenant_factory):
        tenant = await tenant_factory("shop1")
        context = context_factory()

        async with context.scoped(tenant):
            await MetadataMigrationRunner().apply(context)
            assert "users" in await tables(context)

    @pytest.mark.asyncio
    async def test_never_touches_main_database(self, context_factory, registry_engine, tenant_factory):
        tenant = await tenant_factory("shop1")
        context = context_factory()

        await context.run_scoped(tenant, MetadataMigrationRunner().apply)

        async with registry_engine.connect() as conn:
            result = await conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'"))
            assert "users" not in {row[0] for row in result}


@pytest.mark.parametrize("backend, expected", [
    ("alembic", AlembicMigrationRunner),
    ("metadata", MetadataMigrationRunner),
])
def test_get_migration_runner(backend, expected):
    assert isinstance(get_migration_runner(backend), expected)
