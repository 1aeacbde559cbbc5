import pytest

from app.cli import build_parser, run
from app.models.tenant import TenantStatus


def _args(*argv):
    return build_parser().parse_args(list(argv))


def test_parser_requires_a_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_parser_tenant_create_defaults():
    args = _args("tenant", "create", "--name", "Acme Gym", "--domain", "acme-gym")
    assert args.tenant_type == "GYM"
    assert args.activate is False
    assert args.email is None


@pytest.mark.asyncio
async def test_setup_migrates_control_and_common(registry, schema_manager, capsys):
    assert await run(_args("setup"), registry=registry) == 0

    out = capsys.readouterr().out
    assert "public: 0 migration(s) applied" in out
    assert "common: 2 migration(s) applied" in out
    assert ("create", "common") in schema_manager.calls


@pytest.mark.asyncio
async def test_create_and_activate_tenant(registry, capsys):
    code = await run(
        _args("tenant", "create", "--name", "Acme Gym", "--domain", "acme-gym", "--activate"),
        registry=registry,
    )

    assert code == 0
    assert "schema tenant_acmegym (ACTIVE, READY)" in capsys.readouterr().out
    tenant = await registry.resolve_tenant("acme-gym")
    assert tenant.status == TenantStatus.ACTIVE


@pytest.mark.asyncio
async def test_duplicate_domain_exits_with_error(registry, capsys):
    create = _args("tenant", "create", "--name", "Acme Gym", "--domain", "acme-gym")
    assert await run(create, registry=registry) == 0

    assert await run(create, registry=registry) == 1
    assert "error:" in capsys.readouterr().err


@pytest.mark.asyncio
async def test_injection_domain_exits_with_error(registry, schema_manager):
    args = _args("tenant", "create", "--name", "Xpto", "--domain", "x'; DROP SCHEMA public; --")
    assert await run(args, registry=registry) == 1
    assert schema_manager.ddl_calls == []


@pytest.mark.asyncio
async def test_delete_requires_confirmation(registry, schema_manager, capsys):
    await run(_args("tenant", "create", "--name", "Acme Gym", "--domain", "acme-gym"), registry=registry)

    assert await run(_args("tenant", "delete", "--domain", "acme-gym"), registry=registry) == 2
    assert ("drop", "tenant_acmegym") not in schema_manager.calls
    assert "--yes" in capsys.readouterr().err

    assert await run(_args("tenant", "delete", "--domain", "acme-gym", "--yes"), registry=registry) == 0
    assert ("drop", "tenant_acmegym") in schema_manager.calls


@pytest.mark.asyncio
async def test_list_tenants(registry, capsys):
    for domain in ("acme-gym", "zen-studio"):
        await run(_args("tenant", "create", "--name", domain, "--domain", domain), registry=registry)
    capsys.readouterr()

    assert await run(_args("tenant", "list"), registry=registry) == 0
    out = capsys.readouterr().out
    assert "tenant_acmegym" in out
    assert "tenant_zenstudio" in out
    assert "2 tenant(s)" in out


@pytest.mark.asyncio
async def test_migrate_status_and_revert(registry, capsys):
    await run(_args("tenant", "create", "--name", "Acme Gym", "--domain", "acme-gym"), registry=registry)
    capsys.readouterr()

    assert await run(_args("migrate", "status", "--schema", "tenant_acmegym"), registry=registry) == 0
    assert capsys.readouterr().out.count("[x]") == 2

    assert await run(_args("migrate", "revert", "--schema", "tenant_acmegym"), registry=registry) == 0
    assert "reverted 20251115_0202_create_settings_table" in capsys.readouterr().out

    assert await run(_args("migrate", "status", "--schema", "tenant_acmegym"), registry=registry) == 0
    out = capsys.readouterr().out
    assert out.count("[x]") == 1
    assert "[ ] 20251115_0202_create_settings_table" in out


@pytest.mark.asyncio
async def test_revert_without_migrations_exits_with_error(registry):
    assert await run(_args("migrate", "revert", "--schema", "tenant_empty"), registry=registry) == 1
