# app/main.py
import os

from fastapi import FastAPI

from app.core.database import SessionLocal, engine
from app.core.errors import register_error_handlers
from app.core.tenancy import build_connection_cache, build_event_publisher, build_registry
from app.routers import endpoints as tenants, tenant_scope
from shared import (
    RequestContextLogMiddleware,
    configure_logging,
    create_health_router,
    database_lifespan_factory,
    load_service_config,
)
from shared.tenancy import SchemaClass, resolve_schema_name

tags_metadata = [
    {
        "name": "Tenants",
        "description": "Cadastro, provisionamento de schema e remoção de tenants da plataforma.",
    },
    {
        "name": "Tenant",
        "description": "Consultas com escopo do tenant resolvido pelo header X-Tenant-Domain.",
    },
]

_CONFIG = load_service_config("tenant")
_ROOT_PATH = os.getenv("APP_ROOT_PATH") or ""

logger = configure_logging("tenant")

_CONNECTIONS = build_connection_cache(_CONFIG)
_EVENT_PUBLISHER = build_event_publisher(_CONFIG)
_REGISTRY = build_registry(
    _CONFIG,
    engine,
    SessionLocal,
    connections=_CONNECTIONS,
    publisher=_EVENT_PUBLISHER,
)


async def _prepare_control_schema():
    """Aplica as migrations do schema de controle antes de servir."""
    control_schema = resolve_schema_name("", SchemaClass.SYS)
    applied = await _REGISTRY.run_pending_migrations(control_schema)
    logger.info("control_schema_ready", schema=control_schema, applied=applied)


async def _close_publisher():
    if _EVENT_PUBLISHER is not None:
        await _EVENT_PUBLISHER.close()


lifespan = database_lifespan_factory(
    service_name="tenant",
    prepare=_prepare_control_schema,
    shutdown=[_CONNECTIONS.close_all, engine.dispose, _close_publisher],
)

app = FastAPI(
    title="Tenant Service",
    version="0.2.0",
    description="API responsável pelo ciclo de vida dos tenants e pelo roteamento de conexões por schema.",
    openapi_tags=tags_metadata,
    root_path=_ROOT_PATH,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.state.config = _CONFIG
app.state.registry = _REGISTRY
app.state.event_publisher = _EVENT_PUBLISHER

app.add_middleware(RequestContextLogMiddleware, logger=logger)
register_error_handlers(app)


# Health check endpoints
health_router = create_health_router(
    service_name="tenant",
    database_engine=engine,
    redis_url=_CONFIG.redis.url if _CONFIG.redis.url else None,
    connections=_CONNECTIONS,
)
app.include_router(health_router)

app.include_router(tenants.router, prefix="/tenants")
app.include_router(tenant_scope.router, prefix="/tenant")


@app.get("/")
def root():
    return {
        "service": "tenant",
        "status": "ok",
        "docs_url": "/docs",
        "config": {
            "redis_stream": _CONFIG.redis.stream,
            "schema_prefix": _CONFIG.tenancy.schema_prefix,
            "auto_create_schema": _CONFIG.tenancy.auto_create_schema,
        },
    }
