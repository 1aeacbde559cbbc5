"""Health check utilities for FastAPI services.

Provides endpoints /health and /ready for Docker/Kubernetes monitoring.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as aioredis
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from .tenancy import TenantConnectionCache


async def check_database_health(engine: Optional[AsyncEngine], timeout: float = 2.0) -> bool:
    """Verifica se o banco de dados de controle está disponível.

    Args:
        engine: AsyncEngine do banco de controle
        timeout: Timeout em segundos para a verificação

    Returns:
        True se banco está disponível, False caso contrário
    """
    if engine is None:
        return False

    async def _probe() -> None:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    try:
        await asyncio.wait_for(_probe(), timeout=timeout)
        return True
    except Exception:
        return False


async def check_redis_health(redis_url: Optional[str] = None) -> Optional[bool]:
    """Verifica se o Redis está disponível.

    Returns:
        True se Redis está disponível,
        False se Redis está configurado mas indisponível,
        None se Redis não está configurado
    """
    if not redis_url:
        return None

    client = aioredis.from_url(redis_url)
    try:
        await asyncio.wait_for(client.ping(), timeout=1.0)
        return True
    except Exception:
        return False
    finally:
        await client.aclose()


def create_health_router(
    service_name: str,
    database_engine: Optional[AsyncEngine] = None,
    redis_url: Optional[str] = None,
    connections: Optional[TenantConnectionCache] = None,
) -> APIRouter:
    """Cria router FastAPI com endpoints /health e /ready.

    Args:
        service_name: Nome do serviço (ex: "tenant")
        database_engine: Engine do banco de controle
        redis_url: URL do Redis para verificação (opcional)
        connections: Cache de pools por tenant, reportado em /ready

    Returns:
        APIRouter configurado com endpoints de health check
    """
    router = APIRouter(tags=["Health"])

    @router.get("/health", status_code=status.HTTP_200_OK)
    def health():
        """Endpoint básico de saúde.

        Sempre retorna 200 OK se o serviço está rodando.
        Não verifica dependências - use /ready para isso.
        """
        return {
            "status": "ok",
            "service": service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @router.get("/ready", status_code=status.HTTP_200_OK)
    async def ready():
        """Endpoint de readiness.

        Verifica o banco de controle (obrigatório) e o Redis (se configurado).
        Retorna 200 se tudo está OK, 503 se alguma dependência falhou.
        """
        checks = {}

        db_healthy = await check_database_health(database_engine)
        checks["database"] = db_healthy

        redis_healthy = await check_redis_health(redis_url)
        checks["redis"] = redis_healthy

        # False significa configurado mas indisponível
        all_healthy = db_healthy and redis_healthy is not False

        response_data = {
            "status": "ready" if all_healthy else "not_ready",
            "service": service_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "checks": checks,
            "tenant_pools": len(connections) if connections is not None else 0,
        }

        return JSONResponse(
            content=response_data,
            status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return router
