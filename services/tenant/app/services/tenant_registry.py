"""Tenant registry: lifecycle of tenant records and their schemas.

The registry is the only component that creates or drops tenant schemas and
the only one that maps a domain to its stored ``schema_name``. Routing always
uses the stored name, never a recomputation from the domain.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.models.tenant import (
    RESOLVABLE_STATUSES,
    ProvisioningStatus,
    Tenant,
    TenantStatus,
    TenantType,
)
from app.schemas.tenant_schema import (
    MigrationEntryOut,
    MigrationStatusOut,
    TenantContact,
    TenantCreate,
    TenantDetailOut,
    TenantOut,
    TenantUpdate,
)
from app.services.seeding import seed_tenant_data
from shared.cache import get_cached_tenant, invalidate_tenant_cache, set_cached_tenant
from shared.config import TenancyConfig
from shared.messaging import EventPublisher
from shared.tenancy import (
    DomainAlreadyExists,
    MigrationRunner,
    SchemaClass,
    SchemaManager,
    SchemaNameUnavailable,
    SchemaOperationFailed,
    TenantConnectionCache,
    TenantInactive,
    TenantNotFound,
    TenantNotReady,
    classify_schema,
    resolve_schema_name,
    validate_domain,
    validate_schema_name,
    with_random_suffix,
)

logger = structlog.get_logger(__name__)

Seeder = Callable[[AsyncEngine, TenantType], Awaitable[Any]]

DEFAULT_NAME_ATTEMPTS = 5


class TenantRegistry:
    """Create, provision, resolve and delete tenants.

    Collaborators are injected by the composition root (``app.core.tenancy``)
    so tests can swap the DDL layer, the pool cache or the seed step.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        control_engine: AsyncEngine,
        schema_manager: SchemaManager,
        connections: TenantConnectionCache,
        runners: Mapping[SchemaClass, MigrationRunner],
        settings: TenancyConfig,
        cache=None,
        publisher: Optional[EventPublisher] = None,
        seeder: Seeder = seed_tenant_data,
        name_attempts: int = DEFAULT_NAME_ATTEMPTS,
    ) -> None:
        self._session_factory = session_factory
        self._control_engine = control_engine
        self._schema_manager = schema_manager
        self._connections = connections
        self._runners = dict(runners)
        self._settings = settings
        self._cache = cache
        self._publisher = publisher
        self._seeder = seeder
        self._name_attempts = name_attempts

    @property
    def connections(self) -> TenantConnectionCache:
        return self._connections

    # ------------------------------------------------------------------
    # Create / provision
    # ------------------------------------------------------------------
    async def create_tenant(self, data: TenantCreate) -> TenantOut:
        """Insert a TRIAL tenant with a freshly allocated schema name.

        With ``auto_create_schema`` on, the schema is provisioned right away;
        a provisioning failure propagates and leaves the row for a retry.
        """
        domain = validate_domain(data.domain)
        async with self._session_factory() as db:
            if await self._find_by_domain(db, domain) is not None:
                raise DomainAlreadyExists(domain)

            schema_name = await self._allocate_schema_name(db, domain)
            now = datetime.now(timezone.utc)
            tenant = Tenant(
                name=data.name,
                domain=domain,
                schema_name=schema_name,
                tenant_type=data.tenant_type,
                status=TenantStatus.TRIAL,
                description=data.description,
                logo=data.logo,
                contact=data.contact.model_dump() if data.contact else None,
                settings=data.settings.model_dump() if data.settings else None,
                trial_start_date=now,
                trial_end_date=now + timedelta(days=self._settings.trial_days),
                is_schema_created=False,
                provisioning_status=ProvisioningStatus.PENDING,
            )
            db.add(tenant)
            try:
                await db.commit()
            except IntegrityError as exc:
                await db.rollback()
                raise DomainAlreadyExists(domain) from exc
            await db.refresh(tenant)
            record = TenantOut.model_validate(tenant)

        logger.info("tenant_created", tenant_id=str(record.id), domain=domain, schema=schema_name)
        await self._publish("tenant.created", record)

        if self._settings.auto_create_schema:
            return await self.provision_tenant(record.id)
        return record

    async def provision_tenant(self, tenant_id: UUID) -> TenantOut:
        """Create the schema, run tenant migrations and seed it.

        Every step is idempotent, so this is also the retry path for a tenant
        left in PENDING or SCHEMA_CREATED.
        """
        async with self._session_factory() as db:
            tenant = await self._load(db, tenant_id)
            schema_name = tenant.schema_name
            log = logger.bind(tenant_id=str(tenant.id), schema=schema_name)

            try:
                if not await self._schema_manager.create_schema(schema_name):
                    raise SchemaOperationFailed(schema_name, "create")
                if tenant.provisioning_status == ProvisioningStatus.PENDING:
                    tenant.provisioning_status = ProvisioningStatus.SCHEMA_CREATED
                    await db.commit()

                engine = await self._connections.get_connection(schema_name)
                await self._runners[SchemaClass.TENANT].run(engine, schema=schema_name)
                await self._seeder(engine, TenantType(tenant.tenant_type))
            except Exception as exc:
                # The session may be unusable (failed flush or commit).
                await db.rollback()
                provisioning_status = await self._record_provisioning_error(tenant_id, exc)
                log.error(
                    "tenant_provisioning_failed",
                    provisioning_status=provisioning_status,
                    error=str(exc),
                )
                raise

            tenant.provisioning_status = ProvisioningStatus.READY
            tenant.is_schema_created = True
            tenant.provisioning_error = None
            await db.commit()
            await db.refresh(tenant)
            record = TenantOut.model_validate(tenant)

        log.info("tenant_provisioned")
        await invalidate_tenant_cache(self._cache, record.domain)
        await self._publish("tenant.provisioned", record)
        return record

    async def provision_tenant_for_domain(
        self,
        domain: str,
        name: str,
        tenant_type: TenantType = TenantType.GYM,
        contact_email: Optional[str] = None,
        *,
        activate: bool = False,
    ) -> TenantOut:
        """Create and provision in one call. Used by the CLI."""
        domain = validate_domain(domain)
        data = TenantCreate(
            name=name,
            domain=domain,
            tenant_type=tenant_type,
            contact=TenantContact(email=contact_email) if contact_email else None,
        )
        record = await self.create_tenant(data)
        if not record.is_ready:
            record = await self.provision_tenant(record.id)
        if activate:
            record = await self.update_tenant(record.id, TenantUpdate(status=TenantStatus.ACTIVE))
        return record

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    async def get_tenant(self, tenant_id: UUID) -> TenantDetailOut:
        async with self._session_factory() as db:
            tenant = await self._load(db, tenant_id)
            return TenantDetailOut.model_validate(tenant)

    async def get_tenant_by_domain(self, domain: str) -> TenantOut:
        domain = validate_domain(domain)
        async with self._session_factory() as db:
            tenant = await self._find_by_domain(db, domain)
            if tenant is None:
                raise TenantNotFound(domain)
            return TenantOut.model_validate(tenant)

    async def list_tenants(self, page: int = 1, limit: int = 10) -> Tuple[List[TenantOut], int]:
        page = max(page, 1)
        limit = max(min(limit, 100), 1)
        async with self._session_factory() as db:
            total = await db.scalar(select(func.count()).select_from(Tenant))
            rows = await db.scalars(
                select(Tenant)
                .order_by(Tenant.created_at.desc(), Tenant.name)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return [TenantOut.model_validate(row) for row in rows], total or 0

    async def resolve_tenant(self, domain: str) -> TenantOut:
        """Return the routable record for ``domain``.

        Raises before any tenant connection is attempted:
            TenantNotFound: domínio desconhecido.
            TenantInactive: status diferente de ACTIVE.
            TenantNotReady: schema ainda não provisionado por completo.
        """
        domain = validate_domain(domain)
        cached = await get_cached_tenant(self._cache, domain)
        if cached is not None:
            record = TenantOut.model_validate(cached)
        else:
            record = await self.get_tenant_by_domain(domain)

        if record.status not in RESOLVABLE_STATUSES:
            raise TenantInactive(domain, TenantStatus(record.status).value)
        if not record.is_ready:
            raise TenantNotReady(domain, ProvisioningStatus(record.provisioning_status).value)

        if cached is None:
            await set_cached_tenant(
                self._cache,
                domain,
                record.model_dump(mode="json"),
                ttl=self._settings.cache_ttl,
            )
        return record

    async def get_schema_connection(self, schema_name: str) -> AsyncEngine:
        return await self._connections.get_connection(schema_name)

    # ------------------------------------------------------------------
    # Update / delete
    # ------------------------------------------------------------------
    async def update_tenant(self, tenant_id: UUID, patch: TenantUpdate) -> TenantOut:
        changes = patch.model_dump(exclude_unset=True)
        async with self._session_factory() as db:
            tenant = await self._load(db, tenant_id)
            for field, value in changes.items():
                setattr(tenant, field, value)
            await db.commit()
            await db.refresh(tenant)
            record = TenantOut.model_validate(tenant)

        logger.info("tenant_updated", tenant_id=str(tenant_id), fields=sorted(changes))
        await invalidate_tenant_cache(self._cache, record.domain)
        return record

    async def delete_tenant(self, tenant_id: UUID) -> None:
        """Close the pool, drop the schema, then delete the row.

        The row is only removed after a successful drop so the deletion can
        be retried.
        """
        async with self._session_factory() as db:
            tenant = await self._load(db, tenant_id)
            schema_name = tenant.schema_name
            domain = tenant.domain

            await self._connections.close_connection(schema_name)
            try:
                dropped = await self._schema_manager.drop_schema(schema_name)
            except Exception as exc:
                logger.critical(
                    "tenant_schema_drop_failed",
                    tenant_id=str(tenant_id),
                    schema=schema_name,
                    error=str(exc),
                )
                raise SchemaOperationFailed(schema_name, "drop", str(exc)) from exc
            if not dropped:
                logger.critical(
                    "tenant_schema_drop_failed",
                    tenant_id=str(tenant_id),
                    schema=schema_name,
                )
                raise SchemaOperationFailed(schema_name, "drop")

            await db.delete(tenant)
            await db.commit()

        logger.warning("tenant_deleted", tenant_id=str(tenant_id), domain=domain, schema=schema_name)
        await invalidate_tenant_cache(self._cache, domain)
        await self._publish_payload(
            "tenant.deleted",
            {"tenant_id": str(tenant_id), "domain": domain, "schema_name": schema_name},
        )

    async def deprovision_tenant(self, domain: str) -> None:
        record = await self.get_tenant_by_domain(domain)
        await self.delete_tenant(record.id)

    # ------------------------------------------------------------------
    # Migrations
    # ------------------------------------------------------------------
    async def run_pending_migrations(self, schema_name: str) -> int:
        runner, engine = await self._migration_target(schema_name)
        return await runner.run(engine, schema=schema_name)

    async def revert_last_migration(self, schema_name: str) -> str:
        runner, engine = await self._migration_target(schema_name)
        return await runner.revert_last(engine, schema=schema_name)

    async def migration_status(self, schema_name: str) -> MigrationStatusOut:
        runner, engine = await self._migration_target(schema_name)
        applied = await runner.applied(engine)
        applied_names = {entry.name for entry in applied}
        return MigrationStatusOut(
            schema_name=schema_name,
            applied=[MigrationEntryOut(name=e.name, applied_at=e.applied_at) for e in applied],
            pending=[m.name for m in runner.migrations if m.name not in applied_names],
        )

    async def create_common_schema(self) -> bool:
        return await self._schema_manager.create_schema(resolve_schema_name("", SchemaClass.COMMON))

    async def migration_status_for_tenant(self, tenant_id: UUID) -> MigrationStatusOut:
        record = await self.get_tenant(tenant_id)
        return await self.migration_status(record.schema_name)

    async def _migration_target(self, schema_name: str) -> Tuple[MigrationRunner, AsyncEngine]:
        validate_schema_name(schema_name)
        schema_class = classify_schema(schema_name)
        runner = self._runners[schema_class]
        if schema_class == SchemaClass.SYS:
            return runner, self._control_engine
        return runner, await self._connections.get_connection(schema_name)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    async def _record_provisioning_error(self, tenant_id: UUID, exc: Exception) -> Optional[str]:
        """Store the failure on a fresh session; never masks the original error."""
        try:
            async with self._session_factory() as db:
                tenant = await self._load(db, tenant_id)
                tenant.provisioning_error = str(exc)
                await db.commit()
                return ProvisioningStatus(tenant.provisioning_status).value
        except Exception:
            logger.exception("tenant_provisioning_error_not_recorded", tenant_id=str(tenant_id))
            return None

    async def _allocate_schema_name(self, db: AsyncSession, domain: str) -> str:
        """Deterministic name first; random suffix when it is already taken."""
        base = resolve_schema_name(domain, prefix=self._settings.schema_prefix)
        candidate = base
        for attempt in range(1, self._name_attempts + 1):
            if not await self._schema_name_taken(db, candidate):
                return candidate
            logger.warning("schema_name_collision", domain=domain, schema=candidate, attempt=attempt)
            candidate = with_random_suffix(base)
        raise SchemaNameUnavailable(domain, self._name_attempts)

    async def _schema_name_taken(self, db: AsyncSession, schema_name: str) -> bool:
        owner = await db.scalar(select(Tenant.id).where(Tenant.schema_name == schema_name))
        if owner is not None:
            return True
        return await self._schema_manager.schema_exists(schema_name)

    async def _find_by_domain(self, db: AsyncSession, domain: str) -> Optional[Tenant]:
        return await db.scalar(select(Tenant).where(Tenant.domain == domain))

    async def _load(self, db: AsyncSession, tenant_id: UUID) -> Tenant:
        tenant = await db.get(Tenant, tenant_id)
        if tenant is None:
            raise TenantNotFound(tenant_id)
        return tenant

    async def _publish(self, event_type: str, record: TenantOut) -> None:
        await self._publish_payload(event_type, record.model_dump(mode="json"))

    async def _publish_payload(self, event_type: str, payload: Dict[str, Any]) -> None:
        if self._publisher is None:
            return
        await self._publisher.publish(
            event_type,
            payload,
            metadata={"tenant_domain": payload.get("domain")},
        )
