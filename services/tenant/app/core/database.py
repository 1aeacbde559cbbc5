# app/core/database.py
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base

from shared import load_service_config

_config = load_service_config("tenant")


def _engine_options(config) -> dict:
    options = {"future": True, "pool_pre_ping": True}
    if make_url(config.database.async_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=config.database.pool.size,
            max_overflow=config.database.pool.max_overflow,
            pool_timeout=config.database.pool.timeout,
            pool_recycle=config.database.pool.recycle,
        )
    return options


# Conexão de controle: registry de tenants + DDL de schemas
engine = create_async_engine(_config.database.async_url, **_engine_options(_config))
SessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
Base = declarative_base()
