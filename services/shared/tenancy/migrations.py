"""Ledger-driven migration runner for schema-scoped engines.

Scripts are plain modules exposing ``revision``, ``upgrade(op)`` and
``downgrade(op)``; ``op`` is an Alembic :class:`~alembic.operations.Operations`
bound to the connection, so scripts read like regular Alembic revisions.
Every schema keeps its own ``schema_migrations`` ledger; the engine's search
path decides which schema that is.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from types import ModuleType
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import structlog
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table, delete, select
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from .exceptions import MigrationFailed, NoMigrationsApplied

logger = structlog.get_logger(__name__)

LEDGER_TABLE = "schema_migrations"

_ledger_metadata = MetaData()
ledger_table = Table(
    LEDGER_TABLE,
    _ledger_metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("applied_at", DateTime(timezone=True), nullable=False),
)

MigrationStep = Callable[[Operations], None]


@dataclass(frozen=True)
class Migration:
    revision: str
    name: str
    upgrade: MigrationStep
    downgrade: MigrationStep

    @classmethod
    def from_module(cls, module: ModuleType) -> "Migration":
        revision = getattr(module, "revision", None)
        upgrade = getattr(module, "upgrade", None)
        downgrade = getattr(module, "downgrade", None)
        if not revision or upgrade is None or downgrade is None:
            raise ValueError(
                f"Migration module {module.__name__} must define revision, upgrade and downgrade"
            )
        short_name = module.__name__.rsplit(".", 1)[-1]
        return cls(
            revision=revision,
            name=f"{revision}_{short_name}",
            upgrade=upgrade,
            downgrade=downgrade,
        )


@dataclass(frozen=True)
class LedgerEntry:
    id: int
    name: str
    applied_at: datetime


def _run_step(connection: Connection, step: MigrationStep) -> None:
    context = MigrationContext.configure(connection=connection)
    step(Operations(context))


class MigrationRunner:
    """Apply and revert an ordered, closed list of migration scripts."""

    def __init__(self, migrations: Iterable[Migration]) -> None:
        ordered = sorted(migrations, key=lambda migration: migration.revision)
        seen: Dict[str, Migration] = {}
        revisions = set()
        for migration in ordered:
            if migration.revision in revisions or migration.name in seen:
                raise ValueError(f"Duplicate migration revision: {migration.revision}")
            revisions.add(migration.revision)
            seen[migration.name] = migration
        self._migrations: Tuple[Migration, ...] = tuple(ordered)
        self._by_name = seen

    @property
    def migrations(self) -> Sequence[Migration]:
        return self._migrations

    async def applied(self, engine: AsyncEngine) -> List[LedgerEntry]:
        await self._ensure_ledger(engine)
        async with engine.connect() as conn:
            rows = await conn.execute(
                select(ledger_table.c.id, ledger_table.c.name, ledger_table.c.applied_at)
                .order_by(ledger_table.c.id)
            )
            return [LedgerEntry(row.id, row.name, row.applied_at) for row in rows]

    async def pending(self, engine: AsyncEngine) -> List[Migration]:
        applied_names = {entry.name for entry in await self.applied(engine)}
        return [m for m in self._migrations if m.name not in applied_names]

    async def run(self, engine: AsyncEngine, *, schema: Optional[str] = None) -> int:
        """Apply every pending script in order; return how many were applied.

        Each script runs in its own transaction together with its ledger row.
        On failure the ledger holds exactly the scripts applied before it.

        Raises:
            MigrationFailed: com o nome do script que falhou e a causa original.
        """
        pending = await self.pending(engine)
        applied = 0
        for migration in pending:
            try:
                async with engine.begin() as conn:
                    await conn.run_sync(_run_step, migration.upgrade)
                    await conn.execute(
                        ledger_table.insert().values(
                            name=migration.name,
                            applied_at=datetime.now(timezone.utc),
                        )
                    )
            except Exception as exc:
                logger.error(
                    "migration_failed",
                    schema=schema,
                    script=migration.name,
                    applied=applied,
                    error=str(exc),
                )
                raise MigrationFailed(migration.name, exc) from exc
            applied += 1
            logger.info("migration_applied", schema=schema, script=migration.name)

        logger.info("migrations_up_to_date", schema=schema, applied=applied)
        return applied

    async def revert_last(self, engine: AsyncEngine, *, schema: Optional[str] = None) -> str:
        """Run the inverse of the most recently applied script and drop its ledger row."""
        entries = await self.applied(engine)
        if not entries:
            raise NoMigrationsApplied(schema)

        last = entries[-1]
        migration = self._by_name.get(last.name)
        if migration is None:
            raise MigrationFailed(last.name, LookupError("script is not registered"))

        try:
            async with engine.begin() as conn:
                await conn.run_sync(_run_step, migration.downgrade)
                await conn.execute(delete(ledger_table).where(ledger_table.c.id == last.id))
        except Exception as exc:
            logger.error("migration_revert_failed", schema=schema, script=last.name, error=str(exc))
            raise MigrationFailed(last.name, exc) from exc

        logger.info("migration_reverted", schema=schema, script=last.name)
        return last.name

    async def _ensure_ledger(self, engine: AsyncEngine) -> None:
        async with engine.begin() as conn:
            await conn.run_sync(_ledger_metadata.create_all, checkfirst=True)
