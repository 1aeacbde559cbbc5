import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

SERVICE_DIR = Path(__file__).resolve().parents[1]
ROOT_DIR = SERVICE_DIR.parent.parent

service_path = str(SERVICE_DIR)
shared_path = str(ROOT_DIR / "services")
for path in (service_path, shared_path):
    if path in sys.path:
        sys.path.remove(path)
    sys.path.insert(0, path)

for module_name in list(sys.modules):
    if module_name == "app" or module_name.startswith("app."):
        sys.modules.pop(module_name)

os.environ.setdefault("TENANT_DATABASE_URL", f"sqlite:///{SERVICE_DIR / 'test_tenant.db'}")
os.environ["REDIS_URL"] = ""

from app.migrations import MIGRATIONS, build_runners  # noqa: E402
from app.services.tenant_registry import TenantRegistry  # noqa: E402
from shared.config import PoolConfig, TenancyConfig  # noqa: E402
from shared.tenancy import MigrationRunner, SchemaClass, TenantConnectionCache  # noqa: E402


class FakeSchemaManager:
    """SchemaManager em memória: SQLite não tem CREATE SCHEMA.

    Cada schema "existe" como um arquivo SQLite separado criado pelo
    engine factory; aqui só registramos as chamadas de DDL.
    """

    def __init__(self):
        self.schemas = set()
        self.calls = []
        self.create_result = True
        self.drop_result = True
        self.drop_error = None

    async def schema_exists(self, schema_name):
        self.calls.append(("exists", schema_name))
        return schema_name in self.schemas

    async def create_schema(self, schema_name):
        self.calls.append(("create", schema_name))
        if self.create_result:
            self.schemas.add(schema_name)
        return self.create_result

    async def drop_schema(self, schema_name):
        self.calls.append(("drop", schema_name))
        if self.drop_error is not None:
            raise self.drop_error
        if self.drop_result:
            self.schemas.discard(schema_name)
        return self.drop_result

    @property
    def ddl_calls(self):
        return [call for call in self.calls if call[0] in ("create", "drop")]


class SqliteSchemaEngines:
    """Engine factory: um arquivo SQLite por schema, com contador de construções."""

    def __init__(self, directory):
        self.directory = directory
        self.built = []

    def __call__(self, schema_name):
        self.built.append(schema_name)
        return create_async_engine(f"sqlite+aiosqlite:///{self.directory / (schema_name + '.db')}")


def tenancy_settings(**overrides):
    values = {
        "schema_prefix": "tenant_",
        "trial_days": 30,
        "auto_create_schema": True,
        "pool": PoolConfig(size=5, max_overflow=0, timeout=5.0, recycle=1800),
        "max_cached_pools": None,
        "cache_ttl": 300,
    }
    values.update(overrides)
    return TenancyConfig(**values)


@pytest_asyncio.fixture
async def control_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'control.db'}")
    await MigrationRunner(MIGRATIONS[SchemaClass.SYS]).run(engine, schema="public")
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(control_engine):
    return async_sessionmaker(bind=control_engine, expire_on_commit=False)


@pytest.fixture
def schema_manager():
    return FakeSchemaManager()


@pytest.fixture
def engine_factory(tmp_path):
    directory = tmp_path / "schemas"
    directory.mkdir()
    return SqliteSchemaEngines(directory)


@pytest_asyncio.fixture
async def connections(engine_factory):
    cache = TenantConnectionCache(engine_factory)
    yield cache
    await cache.close_all()


@pytest.fixture
def make_registry(session_factory, control_engine, schema_manager, connections):
    def _make(*, auto_create_schema=True, sessions=None, **kwargs):
        settings = tenancy_settings(auto_create_schema=auto_create_schema)
        return TenantRegistry(
            sessions or session_factory,
            control_engine=control_engine,
            schema_manager=schema_manager,
            connections=connections,
            runners=build_runners(),
            settings=settings,
            **kwargs,
        )

    return _make


@pytest.fixture
def registry(make_registry):
    return make_registry()
