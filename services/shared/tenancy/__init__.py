"""Tenant schema lifecycle and connection routing."""

from .connections import (
    SchemaHandle,
    TenantConnectionCache,
    build_tenant_engine_factory,
    ping_engine,
)
from .exceptions import (
    DomainAlreadyExists,
    InvalidIdentifier,
    MigrationFailed,
    NoMigrationsApplied,
    PoolClosed,
    PoolExhausted,
    SchemaNameUnavailable,
    SchemaOperationFailed,
    TenancyError,
    TenantInactive,
    TenantNotFound,
    TenantNotReady,
)
from .migrations import LedgerEntry, Migration, MigrationRunner
from .naming import (
    SchemaClass,
    classify_schema,
    resolve_schema_name,
    validate_domain,
    validate_schema_name,
    with_random_suffix,
)
from .schema_ops import SchemaManager

__all__ = [
    "SchemaHandle",
    "TenantConnectionCache",
    "build_tenant_engine_factory",
    "ping_engine",
    "DomainAlreadyExists",
    "InvalidIdentifier",
    "MigrationFailed",
    "NoMigrationsApplied",
    "PoolClosed",
    "PoolExhausted",
    "SchemaNameUnavailable",
    "SchemaOperationFailed",
    "TenancyError",
    "TenantInactive",
    "TenantNotFound",
    "TenantNotReady",
    "LedgerEntry",
    "Migration",
    "MigrationRunner",
    "SchemaClass",
    "classify_schema",
    "resolve_schema_name",
    "validate_domain",
    "validate_schema_name",
    "with_random_suffix",
    "SchemaManager",
]
