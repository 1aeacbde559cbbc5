from app import main
from app.core.database import SessionLocal, engine
from app.core.tenancy import build_connection_cache, build_registry
from shared import load_service_config


def test_registry_keeps_an_empty_injected_cache():
    config = load_service_config("tenant")
    cache = build_connection_cache(config)
    assert len(cache) == 0

    registry = build_registry(config, engine, SessionLocal, connections=cache)

    assert registry.connections is cache


def test_registry_builds_its_own_cache_when_none_is_given():
    config = load_service_config("tenant")
    registry = build_registry(config, engine, SessionLocal)
    assert registry.connections is not None


def test_app_shares_one_pool_cache():
    # o mesmo cache é fechado no shutdown e reportado em /ready
    assert main._REGISTRY.connections is main._CONNECTIONS
    assert main.app.state.registry.connections is main._CONNECTIONS
