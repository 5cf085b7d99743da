"""
Tenant administration commands.

    tenantctl create "Acme Jewelry" acme-jewelry --plan gold
    tenantctl migrate [--tenant acme-jewelry] [--fresh [--force]]
    tenantctl status acme-jewelry suspended
    tenantctl delete acme-jewelry
    tenantctl list
"""

import argparse
import asyncio
import sys
from typing import List, Optional

from app.core.config import settings
from app.core.database import engine
from app.core.exceptions import TenantError
from app.core.migration_runner import MigrationOptions
from app.middleware.logging import StructuredLogger  # noqa: F401  (configures structlog)
from app.models.tenant import TenantStatus
from app.services.tenant_service import TenantService


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tenantctl", description="Manage tenants and their databases")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a new tenant with database and run migrations")
    create.add_argument("name", help="The tenant name")
    create.add_argument("subdomain", help="The tenant subdomain")
    create.add_argument("--plan", default=None, help="Subscription plan")
    create.add_argument(
        "--status",
        default=TenantStatus.ACTIVE.value,
        choices=[s.value for s in TenantStatus],
        help="Tenant status",
    )

    migrate = commands.add_parser("migrate", help="Run migrations for tenant databases")
    migrate.add_argument("--tenant", default=None, help="Specific tenant subdomain to migrate")
    migrate.add_argument("--fresh", action="store_true", help="Drop all tables and re-run all migrations")
    migrate.add_argument("--revision", default="head", help="Target revision")
    migrate.add_argument("--force", action="store_true", help="Allow --fresh in production")

    delete = commands.add_parser("delete", help="Drop a tenant database and remove the tenant")
    delete.add_argument("subdomain")

    status = commands.add_parser("status", help="Change a tenant status")
    status.add_argument("subdomain")
    status.add_argument("status", choices=[s.value for s in TenantStatus])

    commands.add_parser("list", help="List tenants")

    return parser


async def _create(service: TenantService, args) -> int:
    print(f"Creating tenant: {args.name} ({args.subdomain})")
    tenant = await service.create_tenant(
        name=args.name,
        subdomain=args.subdomain,
        plan=args.plan,
        status=TenantStatus(args.status),
    )
    print("Tenant created successfully!")
    print(f"  ID: {tenant.id}")
    print(f"  Name: {tenant.name}")
    print(f"  Subdomain: {tenant.subdomain}")
    print(f"  Database: {tenant.database_name}")
    print(f"  Status: {TenantStatus(tenant.status).value}")
    return 0


async def _migrate(service: TenantService, args) -> int:
    if args.fresh and settings.ENVIRONMENT == "production" and not args.force:
        print("Refusing to run --fresh in production without --force.", file=sys.stderr)
        return 1

    options = MigrationOptions(revision=args.revision, fresh=args.fresh)

    if args.tenant:
        tenant = await service.registry.get_by_subdomain(args.tenant)
        if tenant is None:
            print(f"Tenant with subdomain '{args.tenant}' not found.", file=sys.stderr)
            return 1
        results = [await service.migrate_tenant(tenant, options)]
    else:
        results = await service.migrate_all_active_tenants(options)
        if not results:
            print("No active tenants found.")
            return 0

    for result in results:
        if result.succeeded:
            print(f"Completed: {result.subdomain}")
        else:
            print(f"Failed: {result.subdomain} - {result.error}", file=sys.stderr)

    failed = sum(1 for r in results if not r.succeeded)
    print("Migration Summary:")
    print(f"  Successful: {len(results) - failed}")
    if failed:
        print(f"  Failed: {failed}", file=sys.stderr)
        return 1
    return 0


async def _delete(service: TenantService, args) -> int:
    tenant = await service.registry.get_by_subdomain(args.subdomain)
    if tenant is None:
        print(f"Tenant with subdomain '{args.subdomain}' not found.", file=sys.stderr)
        return 1
    if not await service.delete_tenant(tenant):
        print(
            f"Failed to delete tenant '{args.subdomain}'; registry row kept for manual cleanup.",
            file=sys.stderr,
        )
        return 1
    print(f"Tenant '{args.subdomain}' deleted.")
    return 0


async def _status(service: TenantService, args) -> int:
    tenant = await service.registry.get_by_subdomain(args.subdomain)
    if tenant is None:
        print(f"Tenant with subdomain '{args.subdomain}' not found.", file=sys.stderr)
        return 1
    tenant = await service.registry.update_status(tenant, TenantStatus(args.status))
    print(f"Tenant '{tenant.subdomain}' is now {TenantStatus(tenant.status).value}.")
    return 0


async def _list(service: TenantService, args) -> int:
    tenants = await service.registry.list_tenants()
    if not tenants:
        print("No tenants found.")
        return 0
    for tenant in tenants:
        ready = "ready" if tenant.is_provisioned else "pending"
        print(f"{tenant.subdomain:<30} {TenantStatus(tenant.status).value:<10} {ready:<8} {tenant.database_name}")
    return 0


COMMANDS = {
    "create": _create,
    "migrate": _migrate,
    "delete": _delete,
    "status": _status,
    "list": _list,
}


async def run(args, service: Optional[TenantService] = None) -> int:
    service = service or TenantService()
    try:
        return await COMMANDS[args.command](service, args)
    except TenantError as e:
        print(f"Error ({e.kind.value}): {e.message}", file=sys.stderr)
        return 1
    finally:
        await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
