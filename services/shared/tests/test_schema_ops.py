"""Testes para as operações de DDL de schema (SchemaManager)."""

from contextlib import asynccontextmanager
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError
from sqlalchemy.schema import CreateSchema, DropSchema

from shared.tenancy import InvalidIdentifier, SchemaManager


class FakeCatalogConnection:
    def __init__(self, engine):
        self._engine = engine

    async def execute(self, statement, params=None):
        self._engine.statements.append(statement)
        if self._engine.fail:
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))
        result = MagicMock()
        if isinstance(statement, CreateSchema):
            self._engine.schemas.add(statement.element)
        elif isinstance(statement, DropSchema):
            self._engine.schemas.discard(statement.element)
        else:
            name = (params or {}).get("name")
            result.scalar.return_value = name if name in self._engine.schemas else None
        return result


class FakeCatalogEngine:
    """Engine falso que guarda os schemas criados em memória."""

    def __init__(self, fail=False):
        self.schemas = set()
        self.statements = []
        self.fail = fail

    @asynccontextmanager
    async def connect(self):
        yield FakeCatalogConnection(self)

    @asynccontextmanager
    async def begin(self):
        yield FakeCatalogConnection(self)


def _compile(statement):
    return str(statement.compile(dialect=postgresql.dialect()))


class TestCreateSchema:
    @pytest.mark.asyncio
    async def test_create_schema_is_idempotent(self):
        """Criar duas vezes nunca falha e o schema continua presente."""
        engine = FakeCatalogEngine()
        manager = SchemaManager(engine)

        assert await manager.create_schema("tenant_acmegym") is True
        assert await manager.create_schema("tenant_acmegym") is True
        assert await manager.schema_exists("tenant_acmegym") is True

    @pytest.mark.asyncio
    async def test_create_schema_uses_if_not_exists(self):
        engine = FakeCatalogEngine()
        await SchemaManager(engine).create_schema("tenant_acmegym")

        sql = _compile(engine.statements[0])
        assert sql.startswith("CREATE SCHEMA IF NOT EXISTS")
        assert "tenant_acmegym" in sql

    @pytest.mark.asyncio
    async def test_create_schema_failure_returns_false(self):
        manager = SchemaManager(FakeCatalogEngine(fail=True))
        assert await manager.create_schema("tenant_acmegym") is False

    @pytest.mark.asyncio
    async def test_invalid_name_raises_before_any_statement(self):
        engine = FakeCatalogEngine()
        manager = SchemaManager(engine)

        with pytest.raises(InvalidIdentifier):
            await manager.create_schema("tenant_x; DROP TABLE tenants")

        assert engine.statements == []


class TestDropSchema:
    @pytest.mark.asyncio
    async def test_drop_schema_cascades(self):
        engine = FakeCatalogEngine()
        manager = SchemaManager(engine)
        await manager.create_schema("tenant_acmegym")

        assert await manager.drop_schema("tenant_acmegym") is True
        assert await manager.schema_exists("tenant_acmegym") is False

        sql = _compile(engine.statements[-2])
        assert "IF EXISTS" in sql
        assert sql.endswith("CASCADE")

    @pytest.mark.asyncio
    async def test_drop_missing_schema_succeeds(self):
        assert await SchemaManager(FakeCatalogEngine()).drop_schema("tenant_ghost") is True

    @pytest.mark.asyncio
    async def test_drop_failure_returns_false(self):
        manager = SchemaManager(FakeCatalogEngine(fail=True))
        assert await manager.drop_schema("tenant_acmegym") is False

    @pytest.mark.asyncio
    async def test_drop_rejects_quoted_name(self):
        engine = FakeCatalogEngine()
        with pytest.raises(InvalidIdentifier):
            await SchemaManager(engine).drop_schema('tenant"; DROP SCHEMA public; --')
        assert engine.statements == []


class TestSchemaExists:
    @pytest.mark.asyncio
    async def test_missing_schema(self):
        assert await SchemaManager(FakeCatalogEngine()).schema_exists("tenant_nope") is False

    @pytest.mark.asyncio
    async def test_probe_failure_is_reported_as_missing(self):
        assert await SchemaManager(FakeCatalogEngine(fail=True)).schema_exists("tenant_x") is False

    @pytest.mark.asyncio
    async def test_probe_binds_the_name_as_parameter(self):
        engine = FakeCatalogEngine()
        await SchemaManager(engine).schema_exists("tenant_acmegym")
        assert ":name" in str(engine.statements[0])
