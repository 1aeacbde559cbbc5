"""Composition root for the tenancy core.

Builds the single control-engine DDL manager, the process-wide pool cache
and the registry that ties them together.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.migrations import build_runners
from app.services.tenant_registry import TenantRegistry
from shared.cache import create_redis_cache
from shared.config import ServiceConfig
from shared.messaging import EventPublisher
from shared.tenancy import SchemaManager, TenantConnectionCache, build_tenant_engine_factory


def build_connection_cache(config: ServiceConfig) -> TenantConnectionCache:
    return TenantConnectionCache(
        build_tenant_engine_factory(config.database, config.tenancy),
        max_pools=config.tenancy.max_cached_pools,
    )


def build_event_publisher(config: ServiceConfig) -> Optional[EventPublisher]:
    # Publicação só quando o Redis estiver configurado
    if not config.redis.url or not config.redis.url.strip():
        return None
    return EventPublisher(config.redis.url, config.redis.stream)


def build_registry(
    config: ServiceConfig,
    engine: AsyncEngine,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    connections: Optional[TenantConnectionCache] = None,
    publisher: Optional[EventPublisher] = None,
) -> TenantRegistry:
    return TenantRegistry(
        session_factory,
        control_engine=engine,
        schema_manager=SchemaManager(engine),
        connections=connections if connections is not None else build_connection_cache(config),
        runners=build_runners(),
        settings=config.tenancy,
        cache=create_redis_cache(config.redis.url),
        publisher=publisher,
    )
