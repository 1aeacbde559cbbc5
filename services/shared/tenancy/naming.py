"""Schema naming and identifier validation.

Everything here is pure: no I/O, deterministic except for
:func:`with_random_suffix`, which the registry only uses after a collision.
"""

from __future__ import annotations

import re
import secrets
from enum import Enum

from sqlalchemy.dialects.postgresql.base import RESERVED_WORDS

from .exceptions import InvalidIdentifier

# PostgreSQL NAMEDATALEN - 1
MAX_IDENTIFIER_LENGTH = 63
MAX_DOMAIN_LENGTH = 100
TENANT_SCHEMA_PREFIX = "tenant_"

_SCHEMA_NAME_RE = re.compile(r"^[a-zA-Z0-9_]+$")
_DOMAIN_RE = re.compile(r"^[a-z0-9](?:[a-z0-9.-]*[a-z0-9])?$")
_DOMAIN_CLEAN_RE = re.compile(r"[^a-zA-Z0-9]")
_SUFFIX_BYTES = 3

# Statement keywords PostgreSQL accepts as identifiers but we never want as raw names.
_FORBIDDEN_WORDS = frozenset(RESERVED_WORDS) | {
    "alter",
    "delete",
    "drop",
    "execute",
    "insert",
    "truncate",
    "update",
}


class SchemaClass(str, Enum):
    SYS = "sys"
    COMMON = "common"
    TENANT = "tenant"


SYSTEM_SCHEMAS = {
    SchemaClass.SYS: "public",
    SchemaClass.COMMON: "common",
}


def validate_schema_name(name: object) -> str:
    """Return ``name`` unchanged if it is safe to use as a schema identifier."""
    if not isinstance(name, str) or not name:
        raise InvalidIdentifier(name, "schema name must be a non-empty string")
    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifier(name, f"longer than {MAX_IDENTIFIER_LENGTH} characters")
    if not _SCHEMA_NAME_RE.match(name):
        raise InvalidIdentifier(name, "only letters, digits and underscore are allowed")
    lowered = name.lower()
    if lowered in _FORBIDDEN_WORDS:
        raise InvalidIdentifier(name, "reserved SQL keyword")
    if lowered.startswith("pg_") or lowered == "information_schema":
        raise InvalidIdentifier(name, "reserved system schema")
    return name


def validate_domain(domain: object) -> str:
    """Normalize a tenant domain and check it against the allowed charset."""
    if not isinstance(domain, str):
        raise InvalidIdentifier(domain, "domain must be a string")
    normalized = domain.strip().lower()
    if not normalized:
        raise InvalidIdentifier(domain, "domain is empty")
    if len(normalized) > MAX_DOMAIN_LENGTH:
        raise InvalidIdentifier(domain, f"longer than {MAX_DOMAIN_LENGTH} characters")
    if not _DOMAIN_RE.match(normalized):
        raise InvalidIdentifier(domain, "only letters, digits, '-' and '.' are allowed")
    return normalized


def validate_prefix(prefix: str) -> str:
    if not prefix or not _SCHEMA_NAME_RE.match(prefix) or len(prefix) >= MAX_IDENTIFIER_LENGTH:
        raise InvalidIdentifier(prefix, "invalid tenant schema prefix")
    return prefix


def resolve_schema_name(
    domain: str,
    schema_class: SchemaClass = SchemaClass.TENANT,
    *,
    prefix: str = TENANT_SCHEMA_PREFIX,
) -> str:
    """Map a tenant domain and schema class to the canonical schema name.

    SYS and COMMON map to fixed names. TENANT strips every non-alphanumeric
    character from the domain, lower-cases it and prepends ``prefix``. The
    result is truncated to the PostgreSQL identifier limit.

    Raises:
        InvalidIdentifier: domain inválido ou vazio depois da limpeza.
    """
    schema_class = SchemaClass(schema_class)
    if schema_class in SYSTEM_SCHEMAS:
        return SYSTEM_SCHEMAS[schema_class]

    normalized = validate_domain(domain)
    cleaned = _DOMAIN_CLEAN_RE.sub("", normalized).lower()
    if not cleaned:
        raise InvalidIdentifier(domain, "domain has no alphanumeric characters")

    validate_prefix(prefix)
    name = f"{prefix}{cleaned}"[:MAX_IDENTIFIER_LENGTH]
    return validate_schema_name(name)


def with_random_suffix(schema_name: str) -> str:
    """Append ``_<6 hex chars>`` to a schema name, keeping it within 63 chars."""
    suffix = secrets.token_hex(_SUFFIX_BYTES)
    room = MAX_IDENTIFIER_LENGTH - len(suffix) - 1
    return validate_schema_name(f"{schema_name[:room]}_{suffix}")


def classify_schema(schema_name: str) -> SchemaClass:
    for schema_class, fixed_name in SYSTEM_SCHEMAS.items():
        if schema_name == fixed_name:
            return schema_class
    return SchemaClass.TENANT
