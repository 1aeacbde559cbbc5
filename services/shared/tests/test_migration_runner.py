"""Testes para o runner de migrations com ledger por schema (SQLite via aiosqlite)."""

import pytest
import pytest_asyncio
import sqlalchemy as sa
from sqlalchemy.ext.asyncio import create_async_engine

from shared.tenancy import Migration, MigrationFailed, MigrationRunner, NoMigrationsApplied


def _create(table):
    def upgrade(op):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("name", sa.String(50), nullable=False),
        )
    return upgrade


def _drop(table):
    def downgrade(op):
        op.drop_table(table)
    return downgrade


def _broken(op):
    raise RuntimeError("column type not supported")


MEMBERS = Migration("20250101_0001", "20250101_0001_members", _create("members"), _drop("members"))
CLASSES = Migration("20250101_0002", "20250101_0002_classes", _create("classes"), _drop("classes"))
BROKEN_CLASSES = Migration("20250101_0002", "20250101_0002_classes", _broken, _drop("classes"))
BOOKINGS = Migration("20250101_0003", "20250101_0003_bookings", _create("bookings"), _drop("bookings"))


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    yield engine
    await engine.dispose()


async def _tables(engine):
    async with engine.connect() as conn:
        return set(await conn.run_sync(lambda sync_conn: sa.inspect(sync_conn).get_table_names()))


class TestRun:
    @pytest.mark.asyncio
    async def test_applies_scripts_in_revision_order(self, engine):
        runner = MigrationRunner([BOOKINGS, MEMBERS, CLASSES])

        applied = await runner.run(engine)

        assert applied == 3
        names = [entry.name for entry in await runner.applied(engine)]
        assert names == [MEMBERS.name, CLASSES.name, BOOKINGS.name]
        assert {"members", "classes", "bookings", "schema_migrations"} <= await _tables(engine)

    @pytest.mark.asyncio
    async def test_second_run_applies_nothing(self, engine):
        runner = MigrationRunner([MEMBERS, CLASSES])
        assert await runner.run(engine) == 2
        assert await runner.run(engine) == 0
        assert len(await runner.applied(engine)) == 2

    @pytest.mark.asyncio
    async def test_failing_script_stops_the_run_and_keeps_previous_entries(self, engine):
        """Script 2 falha: ledger fica com 1 entrada e o erro informa o script."""
        broken = MigrationRunner([MEMBERS, BROKEN_CLASSES, BOOKINGS])

        with pytest.raises(MigrationFailed) as excinfo:
            await broken.run(engine)

        assert excinfo.value.script_name == BROKEN_CLASSES.name
        assert isinstance(excinfo.value.cause, RuntimeError)
        assert [e.name for e in await broken.applied(engine)] == [MEMBERS.name]

        fixed = MigrationRunner([MEMBERS, CLASSES, BOOKINGS])
        assert [m.name for m in await fixed.pending(engine)] == [CLASSES.name, BOOKINGS.name]
        assert await fixed.run(engine) == 2
        assert [e.name for e in await fixed.applied(engine)] == [
            MEMBERS.name,
            CLASSES.name,
            BOOKINGS.name,
        ]

    def test_duplicate_revisions_are_rejected(self):
        with pytest.raises(ValueError):
            MigrationRunner([CLASSES, BROKEN_CLASSES])


class TestRevertLast:
    @pytest.mark.asyncio
    async def test_reverts_most_recent_script(self, engine):
        runner = MigrationRunner([MEMBERS, CLASSES])
        await runner.run(engine)

        reverted = await runner.revert_last(engine)

        assert reverted == CLASSES.name
        assert [e.name for e in await runner.applied(engine)] == [MEMBERS.name]
        tables = await _tables(engine)
        assert "classes" not in tables
        assert "members" in tables

        # depois de reverter, o script volta a ficar pendente
        assert await runner.run(engine) == 1

    @pytest.mark.asyncio
    async def test_empty_ledger_raises_no_migrations_applied(self, engine):
        with pytest.raises(NoMigrationsApplied):
            await MigrationRunner([MEMBERS]).revert_last(engine, schema="tenant_a")

    @pytest.mark.asyncio
    async def test_unknown_ledger_entry_raises_migration_failed(self, engine):
        await MigrationRunner([MEMBERS, CLASSES]).run(engine)

        with pytest.raises(MigrationFailed) as excinfo:
            await MigrationRunner([MEMBERS]).revert_last(engine)

        assert excinfo.value.script_name == CLASSES.name


class TestMigrationFromModule:
    def test_builds_name_from_revision_and_module(self):
        import types

        module = types.ModuleType("app.migrations.tenant.create_things")
        module.revision = "20250101_0009"
        module.upgrade = _create("things")
        module.downgrade = _drop("things")

        migration = Migration.from_module(module)

        assert migration.name == "20250101_0009_create_things"

    def test_module_without_downgrade_is_rejected(self):
        import types

        module = types.ModuleType("incomplete")
        module.revision = "20250101_0010"
        module.upgrade = _create("x")

        with pytest.raises(ValueError):
            Migration.from_module(module)
