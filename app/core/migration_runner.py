"""
Schema application for tenant databases.

Runners operate on a bound ``TenantContext`` and use its engine, so they can
only touch the tenant the context is scoped to.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy.engine import Connection
import structlog

from app.core.config import settings
from app.core.database import TenantBase
from app.core.tenant_context import TenantContext
from app.models import user  # noqa: F401  (registers tenant tables)

logger = structlog.get_logger()

TENANT_MIGRATIONS_DIR = Path(__file__).resolve().parent.parent / "migrations" / "tenant"


@dataclass
class MigrationOptions:
    revision: str = "head"
    fresh: bool = False


class AlembicMigrationRunner:
    """Apply the packaged tenant Alembic scripts over the context connection"""

    def __init__(self, script_location: Optional[Path] = None):
        self.script_location = Path(script_location or TENANT_MIGRATIONS_DIR)

    def make_config(self, connection: Optional[Connection] = None) -> Config:
        config = Config()
        config.set_main_option("script_location", str(self.script_location))
        if connection is not None:
            config.attributes["connection"] = connection
        return config

    async def apply(self, context: TenantContext, options: Optional[MigrationOptions] = None) -> None:
        options = options or MigrationOptions()
        tenant = context.current()
        async with context.engine.begin() as conn:
            await conn.run_sync(self._run, options)
        logger.info(
            "Tenant migrations applied",
            subdomain=tenant.subdomain,
            revision=options.revision,
            fresh=options.fresh,
        )

    def _run(self, connection: Connection, options: MigrationOptions) -> None:
        config = self.make_config(connection)
        if options.fresh:
            command.downgrade(config, "base")
        command.upgrade(config, options.revision)


class MetadataMigrationRunner:
    """Create tenant tables straight from the model metadata"""

    async def apply(self, context: TenantContext, options: Optional[MigrationOptions] = None) -> None:
        options = options or MigrationOptions()
        tenant = context.current()
        async with context.engine.begin() as conn:
            if options.fresh:
                await conn.run_sync(TenantBase.metadata.drop_all)
            await conn.run_sync(TenantBase.metadata.create_all)
        logger.info("Tenant schema created", subdomain=tenant.subdomain, fresh=options.fresh)


def get_migration_runner(backend: Optional[str] = None):
    backend = backend or settings.TENANT_MIGRATION_BACKEND
    if backend == "metadata":
        return MetadataMigrationRunner()
    return AlembicMigrationRunner()
