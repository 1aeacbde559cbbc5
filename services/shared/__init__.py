"""Shared utilities used across services."""

from .config import (
    DatabaseConfig,
    PoolConfig,
    RedisConfig,
    ServiceConfig,
    TenancyConfig,
    async_database_url,
    load_service_config,
)
from .messaging import EventPublisher
from .health import create_health_router
from .logging import RequestContextLogMiddleware, bind_tenant_context, configure_logging
from .startup import database_lifespan, database_lifespan_factory

__all__ = [
    "DatabaseConfig",
    "PoolConfig",
    "RedisConfig",
    "ServiceConfig",
    "TenancyConfig",
    "async_database_url",
    "load_service_config",
    "EventPublisher",
    "create_health_router",
    "RequestContextLogMiddleware",
    "bind_tenant_context",
    "configure_logging",
    "database_lifespan",
    "database_lifespan_factory",
]
