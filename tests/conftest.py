"""
Test configuration for pytest.

The registry and every tenant database are SQLite files under ``tmp_path``;
database provisioning is replaced by an in-memory fake.
"""

import os

# Test environment variables, set before the app modules read settings
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["ADMIN_API_TOKEN"] = "test-admin-token"
os.environ["TENANT_MIGRATION_BACKEND"] = "metadata"
os.environ["LOG_LEVEL"] = "WARNING"

from typing import Optional, Set

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from starlette.requests import Request

from app.core.database import Base
from app.core.migration_runner import MetadataMigrationRunner
from app.core.tenant_context import TenantContext
from app.models.base import utcnow
from app.models.tenant import Tenant, TenantStatus
from app.services.tenant_registry import TenantRegistry
from app.services.tenant_service import TenantService


class FakeProvisioner:
    """Records create/drop calls; SQLite creates the files on first connect"""

    def __init__(self):
        self.databases: Set[str] = set()
        self.dropped = []
        self.fail_create = False
        self.fail_drop = False

    async def create_database(self, database_name: str) -> None:
        if self.fail_create:
            raise RuntimeError("permission denied to create database")
        self.databases.add(database_name)

    async def drop_database(self, database_name: str) -> None:
        if self.fail_drop:
            raise RuntimeError("database is being accessed by other users")
        self.databases.discard(database_name)
        self.dropped.append(database_name)

    async def database_exists(self, database_name: str) -> bool:
        return database_name in self.databases


class RecordingRunner(MetadataMigrationRunner):
    """Metadata runner that can fail for chosen subdomains"""

    def __init__(self, fail_for: Optional[Set[str]] = None):
        self.fail_for = set(fail_for or ())
        self.calls = []

    async def apply(self, context, options=None):
        tenant = context.current()
        self.calls.append((tenant.subdomain, context.engine.url.database))
        if tenant.subdomain in self.fail_for:
            raise RuntimeError(f"migration failed for {tenant.subdomain}")
        await super().apply(context, options)


def make_request(path: str = "/", host: Optional[str] = None, headers: Optional[dict] = None) -> Request:
    raw_headers = []
    if host is not None:
        raw_headers.append((b"host", host.encode()))
    for key, value in (headers or {}).items():
        raw_headers.append((key.lower().encode(), value.encode()))
    return Request({
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": raw_headers,
        "query_string": b"",
    })


@pytest.fixture
async def registry_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'registry.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def registry(registry_engine) -> TenantRegistry:
    return TenantRegistry(async_sessionmaker(registry_engine, expire_on_commit=False))


@pytest.fixture
def engine_factory(tmp_path):
    """One SQLite file per tenant database"""
    def factory(database_name: str):
        return create_async_engine(
            f"sqlite+aiosqlite:///{tmp_path / database_name}.db", poolclass=NullPool
        )
    return factory


@pytest.fixture
def context_factory(registry_engine, engine_factory):
    return lambda: TenantContext(registry_engine, engine_factory)


@pytest.fixture
def provisioner() -> FakeProvisioner:
    return FakeProvisioner()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def service(registry, provisioner, runner, context_factory) -> TenantService:
    return TenantService(
        registry=registry,
        provisioner=provisioner,
        migration_runner=runner,
        context_factory=context_factory,
    )


@pytest.fixture
def tenant_factory(registry):
    """Insert registry rows directly, bypassing provisioning"""
    async def create(subdomain: str, status: TenantStatus = TenantStatus.ACTIVE, provisioned: bool = True) -> Tenant:
        tenant = Tenant(
            name=subdomain.replace("-", " ").title(),
            subdomain=subdomain,
            database_name=f"tenant_{subdomain.replace('-', '_')}",
            status=status,
            settings={},
            provisioned_at=utcnow() if provisioned else None,
        )
        return await registry.add(tenant)
    return create
