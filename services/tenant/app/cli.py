"""Command line tool for tenant operations.

Usage:
    python -m app.cli setup
    python -m app.cli tenant create --name "Acme Gym" --domain acme-gym --type GYM --activate
    python -m app.cli tenant provision --domain acme-gym
    python -m app.cli tenant delete --domain acme-gym --yes
    python -m app.cli tenant list
    python -m app.cli migrate run --schema tenant_acmegym
    python -m app.cli migrate revert --schema tenant_acmegym
    python -m app.cli migrate status --schema public

``setup`` applies the control-schema and common-schema migrations and creates
the ``common`` schema. Every command exits with status 1 on a tenancy error.
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from app.core.database import SessionLocal, engine
from app.core.tenancy import build_event_publisher, build_registry
from app.models.tenant import TenantType
from app.services.tenant_registry import TenantRegistry
from shared import configure_logging, load_service_config
from shared.tenancy import SchemaClass, TenancyError, resolve_schema_name

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="fitness-tenancy", description="Tenant schema lifecycle tool")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("setup", help="Apply control and common schema migrations")

    tenant = commands.add_parser("tenant", help="Tenant lifecycle").add_subparsers(
        dest="action", required=True
    )
    create = tenant.add_parser("create", help="Create and provision a tenant")
    create.add_argument("--name", required=True, help="Tenant display name")
    create.add_argument("--domain", required=True, help="Tenant domain (e.g. acme-gym)")
    create.add_argument(
        "--type",
        dest="tenant_type",
        default=TenantType.GYM.value,
        choices=[t.value for t in TenantType],
    )
    create.add_argument("--email", default=None, help="Contact email")
    create.add_argument("--activate", action="store_true", help="Mark the tenant ACTIVE once ready")

    provision = tenant.add_parser("provision", help="Retry provisioning of an existing tenant")
    provision.add_argument("--domain", required=True)

    delete = tenant.add_parser("delete", help="Drop the tenant schema and remove the tenant")
    delete.add_argument("--domain", required=True)
    delete.add_argument("--yes", action="store_true", help="Confirm the irreversible drop")

    listing = tenant.add_parser("list", help="List tenants")
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--limit", type=int, default=50)

    migrate = commands.add_parser("migrate", help="Schema migrations").add_subparsers(
        dest="action", required=True
    )
    for action in ("run", "revert", "status"):
        sub = migrate.add_parser(action)
        sub.add_argument("--schema", required=True, help="public, common or a tenant schema")

    return parser


async def _setup(registry: TenantRegistry) -> None:
    control = resolve_schema_name("", SchemaClass.SYS)
    common = resolve_schema_name("", SchemaClass.COMMON)
    applied = await registry.run_pending_migrations(control)
    print(f"{control}: {applied} migration(s) applied")

    if not await registry.create_common_schema():
        raise RuntimeError(f"could not create schema {common}")
    applied = await registry.run_pending_migrations(common)
    print(f"{common}: {applied} migration(s) applied")


async def _tenant(registry: TenantRegistry, args: argparse.Namespace) -> int:
    if args.action == "create":
        record = await registry.provision_tenant_for_domain(
            args.domain,
            args.name,
            TenantType(args.tenant_type),
            args.email,
            activate=args.activate,
        )
        print(
            f"Tenant {record.domain} -> schema {record.schema_name} "
            f"({record.status.value}, {record.provisioning_status.value})"
        )
    elif args.action == "provision":
        record = await registry.get_tenant_by_domain(args.domain)
        record = await registry.provision_tenant(record.id)
        print(f"Tenant {record.domain} provisioned ({record.provisioning_status.value})")
    elif args.action == "delete":
        if not args.yes:
            print("Refusing to drop a tenant schema without --yes", file=sys.stderr)
            return 2
        await registry.deprovision_tenant(args.domain)
        print(f"Tenant {args.domain} deleted")
    elif args.action == "list":
        items, total = await registry.list_tenants(page=args.page, limit=args.limit)
        for record in items:
            print(
                f"{record.domain}\t{record.schema_name}\t{record.status.value}\t"
                f"{record.provisioning_status.value}"
            )
        print(f"{total} tenant(s)")
    return 0


async def _migrate(registry: TenantRegistry, args: argparse.Namespace) -> int:
    if args.action == "run":
        applied = await registry.run_pending_migrations(args.schema)
        print(f"{args.schema}: {applied} migration(s) applied")
    elif args.action == "revert":
        name = await registry.revert_last_migration(args.schema)
        print(f"{args.schema}: reverted {name}")
    elif args.action == "status":
        status = await registry.migration_status(args.schema)
        for entry in status.applied:
            print(f"[x] {entry.name}\t{entry.applied_at}")
        for name in status.pending:
            print(f"[ ] {name}")
    return 0


async def run(args: argparse.Namespace, registry: Optional[TenantRegistry] = None) -> int:
    owns_registry = registry is None
    publisher = None
    if registry is None:
        config = load_service_config("tenant")
        publisher = build_event_publisher(config)
        registry = build_registry(config, engine, SessionLocal, publisher=publisher)

    try:
        if args.command == "setup":
            await _setup(registry)
            return 0
        if args.command == "tenant":
            return await _tenant(registry, args)
        return await _migrate(registry, args)
    except TenancyError as exc:
        logger.error("cli_command_failed", command=args.command, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if owns_registry:
            await registry.connections.close_all()
            if publisher is not None:
                await publisher.close()
            await engine.dispose()


def main(argv: Optional[List[str]] = None) -> int:
    configure_logging("tenant-cli")
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
