"""Cache Redis para registros de tenant resolvidos por domínio.

A resolução de tenant acontece em toda requisição com escopo de tenant; o
cache evita ida ao banco de controle. Falhas do Redis nunca quebram a
requisição: as funções devolvem ``None``/``False`` e o chamador segue para o
banco.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger(__name__)

# Prefixo para chaves de cache
TENANT_CACHE_PREFIX = "tenancy:tenant:domain:"


def create_redis_cache(redis_url: Optional[str]) -> Optional[aioredis.Redis]:
    """Cria cliente Redis assíncrono para cache.

    Args:
        redis_url: URL de conexão Redis (ou None se não configurado)

    Returns:
        Cliente Redis ou None se não configurado
    """
    if not redis_url or not redis_url.strip():
        return None

    try:
        return aioredis.from_url(redis_url, decode_responses=True)
    except ValueError:
        logger.warning("redis_cache_disabled", reason="invalid url")
        return None


def _get_tenant_cache_key(domain: str) -> str:
    """Gera chave de cache para o registro de tenant."""
    return f"{TENANT_CACHE_PREFIX}{domain}"


async def get_cached_tenant(
    cache: Optional[aioredis.Redis],
    domain: str,
) -> Optional[Dict[str, Any]]:
    """Recupera o registro de tenant do cache.

    Args:
        cache: Cliente Redis (ou None se não disponível)
        domain: Domínio normalizado do tenant

    Returns:
        Dicionário com o registro ou None se não encontrado
    """
    if cache is None:
        return None

    try:
        cached_data = await cache.get(_get_tenant_cache_key(domain))
        if cached_data is None:
            return None
        return json.loads(cached_data)
    except Exception as exc:
        logger.warning("tenant_cache_read_failed", domain=domain, error=str(exc))
        return None


async def set_cached_tenant(
    cache: Optional[aioredis.Redis],
    domain: str,
    record: Dict[str, Any],
    ttl: int = 300,
) -> bool:
    """Armazena o registro de tenant no cache.

    Args:
        cache: Cliente Redis (ou None se não disponível)
        domain: Domínio normalizado do tenant
        record: Registro serializável (json)
        ttl: Time to live em segundos (padrão: 300 = 5 minutos)

    Returns:
        True se armazenado com sucesso, False caso contrário
    """
    if cache is None:
        return False

    try:
        await cache.set(_get_tenant_cache_key(domain), json.dumps(record, default=str), ex=ttl)
        return True
    except Exception as exc:
        logger.warning("tenant_cache_write_failed", domain=domain, error=str(exc))
        return False


async def invalidate_tenant_cache(
    cache: Optional[aioredis.Redis],
    domain: str,
) -> bool:
    """Invalida o cache do tenant (update, provisionamento, remoção)."""
    if cache is None:
        return False

    try:
        await cache.delete(_get_tenant_cache_key(domain))
        return True
    except Exception as exc:
        logger.warning("tenant_cache_invalidate_failed", domain=domain, error=str(exc))
        return False
