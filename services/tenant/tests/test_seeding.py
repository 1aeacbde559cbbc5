import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from app.migrations import build_runners
from app.models.access import Permission, Role, RoleType
from app.models.tenant import TenantType
from app.services.seeding import TENANT_ROLE_CONFIGS, permissions_for_level, seed_tenant_data
from shared.tenancy import SchemaClass


@pytest_asyncio.fixture
async def tenant_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tenant.db'}")
    await build_runners()[SchemaClass.TENANT].run(engine, schema="tenant_seed")
    yield engine
    await engine.dispose()


def _perms(*pairs):
    return [Permission(name=f"{r} {a}", resource=r, action=a) for r, a in pairs]


class TestPermissionsForLevel:
    permissions = _perms(
        ("users", "UPDATE"),
        ("classes", "UPDATE"),
        ("classes", "DELETE"),
        ("classes", "READ"),
        ("classes", "CREATE"),
        ("analytics", "READ"),
        ("members", "MANAGE"),
    )

    def _keys(self, level):
        return {(p.resource, p.action) for p in permissions_for_level(level, self.permissions)}

    def test_owner_gets_everything(self):
        assert len(permissions_for_level("OWNER", self.permissions)) == len(self.permissions)

    def test_manager_loses_delete_and_analytics(self):
        keys = self._keys("MANAGER")
        assert ("classes", "DELETE") not in keys
        assert ("analytics", "READ") not in keys
        assert ("members", "MANAGE") in keys

    def test_premium_can_update_except_users(self):
        keys = self._keys("PREMIUM")
        assert ("classes", "UPDATE") in keys
        assert ("users", "UPDATE") not in keys
        assert ("members", "MANAGE") not in keys

    def test_basic_reads_and_creates_only(self):
        assert self._keys("BASIC") == {("classes", "READ"), ("classes", "CREATE"), ("analytics", "READ")}


def test_every_tenant_type_has_seed_config():
    assert set(TENANT_ROLE_CONFIGS) == set(TenantType)
    for config in TENANT_ROLE_CONFIGS.values():
        assert config["role_types"]
        assert config["permissions"]


@pytest.mark.asyncio
@pytest.mark.parametrize("tenant_type", list(TenantType))
async def test_seed_is_idempotent(tenant_engine, tenant_type):
    expected_roles = len(TENANT_ROLE_CONFIGS[tenant_type]["role_types"])
    assert await seed_tenant_data(tenant_engine, tenant_type) == expected_roles
    assert await seed_tenant_data(tenant_engine, tenant_type) == 0

    async with AsyncSession(tenant_engine) as db:
        assert await db.scalar(select(func.count()).select_from(RoleType)) == expected_roles
        assert await db.scalar(select(func.count()).select_from(Role)) == expected_roles
        assert await db.scalar(select(func.count()).select_from(Permission)) == len(
            TENANT_ROLE_CONFIGS[tenant_type]["permissions"]
        )


@pytest.mark.asyncio
async def test_owner_role_gets_all_permissions(tenant_engine):
    await seed_tenant_data(tenant_engine, TenantType.GYM)

    async with AsyncSession(tenant_engine) as db:
        owner = await db.scalar(select(Role).where(Role.name == "Gym Owner"))
        member = await db.scalar(select(Role).where(Role.name == "Gym Member"))

    assert len(owner.permissions) == len(TENANT_ROLE_CONFIGS[TenantType.GYM]["permissions"])
    assert {p.action for p in member.permissions} <= {"READ", "CREATE"}
