"""Alembic environment for tenant databases.

Used two ways: programmatically by ``AlembicMigrationRunner``, which passes
the bound tenant connection in ``config.attributes["connection"]``, and from
the command line with ``alembic -x tenant=<database_name> upgrade head``.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool

from alembic import context

from app.core.database import TenantBase, tenant_database_url
from app.models import user  # noqa: F401

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

target_metadata = TenantBase.metadata


def get_url() -> str:
    """Sync URL of the tenant database named by ``-x tenant=...``"""
    database_name = context.get_x_argument(as_dictionary=True).get("tenant")
    if not database_name:
        raise RuntimeError("Pass the tenant database with: alembic -x tenant=<database_name> ...")
    url = tenant_database_url(database_name)
    if url.drivername == "postgresql+asyncpg":
        url = url.set(drivername="postgresql+psycopg2")
    elif url.drivername == "sqlite+aiosqlite":
        url = url.set(drivername="sqlite")
    return url.render_as_string(hide_password=False)


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode"""
    context.configure(
        url=get_url(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata)

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    """Run migrations in 'online' mode"""
    connection = config.attributes.get("connection")
    if connection is not None:
        do_run_migrations(connection)
        return

    section = config.get_section(config.config_ini_section, {})
    section["sqlalchemy.url"] = get_url()
    connectable = engine_from_config(section, prefix="sqlalchemy.", poolclass=pool.NullPool)

    with connectable.connect() as connection:
        do_run_migrations(connection)


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
