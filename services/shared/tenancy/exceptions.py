"""Error taxonomy for the tenant schema lifecycle and connection routing."""

from __future__ import annotations

from typing import Optional


class TenancyError(Exception):
    """Base class for every tenancy failure surfaced to callers."""


class InvalidIdentifier(TenancyError, ValueError):
    """A domain or schema name failed validation. Raised before any I/O."""

    def __init__(self, value: object, reason: str) -> None:
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid identifier {value!r}: {reason}")


class TenantNotFound(TenancyError, LookupError):
    def __init__(self, key: object) -> None:
        self.key = key
        super().__init__(f"Tenant not found: {key}")


class DomainAlreadyExists(TenancyError):
    def __init__(self, domain: str) -> None:
        self.domain = domain
        super().__init__(f"Domain already registered: {domain}")


class SchemaNameUnavailable(TenancyError):
    def __init__(self, domain: str, attempts: int) -> None:
        self.domain = domain
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a free schema name for {domain} after {attempts} attempts"
        )


class TenantInactive(TenancyError):
    """Tenant exists but its status does not allow connections."""

    def __init__(self, domain: str, status: str) -> None:
        self.domain = domain
        self.status = status
        super().__init__(f"Tenant {domain} is not active (status={status})")


class TenantNotReady(TenancyError):
    """Tenant exists but its schema is not fully provisioned yet."""

    def __init__(self, domain: str, provisioning_status: str) -> None:
        self.domain = domain
        self.provisioning_status = provisioning_status
        super().__init__(
            f"Tenant {domain} is not ready (provisioning_status={provisioning_status})"
        )


class SchemaOperationFailed(TenancyError):
    def __init__(self, schema_name: str, operation: str, detail: Optional[str] = None) -> None:
        self.schema_name = schema_name
        self.operation = operation
        self.detail = detail
        message = f"Schema operation '{operation}' failed for {schema_name}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class MigrationFailed(TenancyError):
    """A migration script failed; the ledger keeps every script applied before it."""

    def __init__(self, script_name: str, cause: BaseException) -> None:
        self.script_name = script_name
        self.cause = cause
        super().__init__(f"Migration {script_name} failed: {cause}")


class NoMigrationsApplied(TenancyError):
    def __init__(self, schema_name: Optional[str] = None) -> None:
        self.schema_name = schema_name
        target = f" for {schema_name}" if schema_name else ""
        super().__init__(f"No migrations applied{target}")


class PoolExhausted(TenancyError):
    """Acquiring a pooled connection timed out. Transient; safe to retry."""

    def __init__(self, schema_name: str, timeout: Optional[float] = None) -> None:
        self.schema_name = schema_name
        self.timeout = timeout
        super().__init__(f"Connection pool exhausted for {schema_name}")


class PoolClosed(TenancyError):
    """The schema's pool was closed while it was still being initialised."""

    def __init__(self, schema_name: str) -> None:
        self.schema_name = schema_name
        super().__init__(f"Connection pool for {schema_name} was closed during initialisation")
