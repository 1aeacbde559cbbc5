"""Schema DDL issued through the shared control-database engine."""

from __future__ import annotations

import structlog
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.schema import CreateSchema, DropSchema

from .naming import validate_schema_name

logger = structlog.get_logger(__name__)

_SCHEMA_EXISTS_SQL = text(
    "SELECT schema_name FROM information_schema.schemata WHERE schema_name = :name"
)


class SchemaManager:
    """Create, drop and probe PostgreSQL schemas.

    Every name goes through :func:`validate_schema_name` before a statement is
    built, so :class:`InvalidIdentifier` is raised without touching the
    database. I/O failures never raise: they are logged and reported as
    ``False`` so batch callers can keep going.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def schema_exists(self, schema_name: str) -> bool:
        validate_schema_name(schema_name)
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(_SCHEMA_EXISTS_SQL, {"name": schema_name})
                return result.scalar() is not None
        except Exception:
            logger.exception("schema_exists_check_failed", schema=schema_name)
            return False

    async def create_schema(self, schema_name: str) -> bool:
        """Idempotent ``CREATE SCHEMA IF NOT EXISTS``."""
        validate_schema_name(schema_name)
        try:
            async with self._engine.begin() as conn:
                await conn.execute(CreateSchema(schema_name, if_not_exists=True))
        except Exception:
            logger.exception("schema_create_failed", schema=schema_name)
            return False
        logger.info("schema_created", schema=schema_name)
        return True

    async def drop_schema(self, schema_name: str) -> bool:
        """``DROP SCHEMA IF EXISTS ... CASCADE``. Irreversible."""
        validate_schema_name(schema_name)
        try:
            async with self._engine.begin() as conn:
                await conn.execute(DropSchema(schema_name, cascade=True, if_exists=True))
        except Exception:
            logger.exception("schema_drop_failed", schema=schema_name)
            return False
        logger.warning("schema_dropped", schema=schema_name)
        return True
