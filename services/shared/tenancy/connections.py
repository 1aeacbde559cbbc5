"""Process-wide cache of pooled, schema-scoped database engines.

One pool per tenant schema, never one per request. The cache is an explicit
object owned by the application's composition root; nothing else keeps a
long-lived reference to a tenant engine.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, AsyncIterator, Awaitable, Callable, Dict, List, Optional

import structlog
from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from .exceptions import PoolClosed, PoolExhausted
from .naming import validate_schema_name

if TYPE_CHECKING:  # pragma: no cover
    from shared.config import DatabaseConfig, TenancyConfig

logger = structlog.get_logger(__name__)

EngineFactory = Callable[[str], AsyncEngine]
WarmUp = Callable[[AsyncEngine], Awaitable[None]]


@dataclass
class SchemaHandle:
    schema_name: str
    engine: AsyncEngine
    initialized: bool = False


async def ping_engine(engine: AsyncEngine) -> None:
    """Default warm-up: check out one connection and run ``SELECT 1``."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


def search_path_connect_args(url: str, schema_name: str) -> Dict[str, object]:
    """Driver-specific ``connect_args`` pinning the session search path."""
    validate_schema_name(schema_name)
    driver = make_url(url).get_driver_name()
    if driver == "asyncpg":
        return {"server_settings": {"search_path": schema_name}}
    if driver.startswith("psycopg"):
        return {"options": f"-csearch_path={schema_name}"}
    return {}


def build_tenant_engine_factory(
    database: "DatabaseConfig",
    tenancy: "TenancyConfig",
) -> EngineFactory:
    """Return a factory building pooled engines scoped to one schema.

    All tenants share the control endpoint; only the search path differs.
    """
    url = database.async_url
    is_sqlite = make_url(url).get_backend_name() == "sqlite"

    def factory(schema_name: str) -> AsyncEngine:
        kwargs: Dict[str, object] = {
            "pool_pre_ping": True,
            "connect_args": search_path_connect_args(url, schema_name),
        }
        if not is_sqlite:
            kwargs.update(
                pool_size=tenancy.pool.size,
                max_overflow=tenancy.pool.max_overflow,
                pool_timeout=tenancy.pool.timeout,
                pool_recycle=tenancy.pool.recycle,
            )
        return create_async_engine(url, **kwargs)

    return factory


class TenantConnectionCache:
    """Registry mapping schema name to a live pooled engine.

    Per key: Absent -> Initializing -> Live -> (close) -> Absent. A close
    while Initializing makes the initialiser dispose its engine.
    Initialisation is serialised per key with an ``asyncio.Lock`` so that
    concurrent first requests for the same schema build exactly one pool.
    When ``max_pools`` is set, least recently used pools beyond the ceiling
    are disposed.
    """

    def __init__(
        self,
        engine_factory: EngineFactory,
        *,
        max_pools: Optional[int] = None,
        warm_up: WarmUp = ping_engine,
    ) -> None:
        if max_pools is not None and max_pools < 1:
            raise ValueError("max_pools must be a positive integer")
        self._engine_factory = engine_factory
        self._max_pools = max_pools
        self._warm_up = warm_up
        self._handles: "OrderedDict[str, SchemaHandle]" = OrderedDict()
        self._locks: Dict[str, asyncio.Lock] = {}
        # Bumped by close_connection / close_all; an initialisation that sees a
        # different token after warm-up discards its engine.
        self._generations: Dict[str, int] = {}
        self._epoch = 0

    def __contains__(self, schema_name: object) -> bool:
        handle = self._handles.get(schema_name)  # type: ignore[arg-type]
        return handle is not None and handle.initialized

    def __len__(self) -> int:
        return len(self._handles)

    def schemas(self) -> List[str]:
        return list(self._handles)

    async def get_connection(self, schema_name: str) -> AsyncEngine:
        validate_schema_name(schema_name)

        handle = self._live_handle(schema_name)
        if handle is not None:
            return handle.engine

        lock = self._locks.setdefault(schema_name, asyncio.Lock())
        async with lock:
            # Another caller may have finished initialising while we waited.
            handle = self._live_handle(schema_name)
            if handle is not None:
                return handle.engine

            token = self._close_token(schema_name)
            handle = SchemaHandle(schema_name, self._engine_factory(schema_name))
            try:
                await self._warm_up(handle.engine)
            except Exception:
                logger.exception("tenant_pool_warm_up_failed", schema=schema_name)
                await handle.engine.dispose()
                raise
            if token != self._close_token(schema_name):
                await handle.engine.dispose()
                logger.warning("tenant_pool_closed_during_init", schema=schema_name)
                raise PoolClosed(schema_name)
            handle.initialized = True
            self._handles[schema_name] = handle
            evicted = self._pop_evictions(keep=schema_name)
            logger.info("tenant_pool_created", schema=schema_name, pools=len(self._handles))

        for old in evicted:
            await self._dispose(old, reason="evicted")
        return handle.engine

    async def close_connection(self, schema_name: str) -> None:
        self._generations[schema_name] = self._generations.get(schema_name, 0) + 1
        handle = self._handles.pop(schema_name, None)
        lock = self._locks.get(schema_name)
        if lock is not None and not lock.locked():
            del self._locks[schema_name]
        if handle is not None:
            await self._dispose(handle, reason="closed")

    async def close_all(self) -> None:
        self._epoch += 1
        handles = list(self._handles.values())
        self._handles.clear()
        self._locks.clear()
        results = await asyncio.gather(
            *(handle.engine.dispose() for handle in handles),
            return_exceptions=True,
        )
        for handle, result in zip(handles, results):
            if isinstance(result, Exception):
                logger.error(
                    "tenant_pool_dispose_failed",
                    schema=handle.schema_name,
                    error=str(result),
                )
        logger.info("tenant_pools_closed", count=len(handles))

    @asynccontextmanager
    async def connect(self, schema_name: str) -> AsyncIterator[AsyncConnection]:
        """Check out one connection from the schema's pool.

        A pool acquire timeout becomes :class:`PoolExhausted`; the cache
        entry stays in place because the pool itself is still valid.
        """
        engine = await self.get_connection(schema_name)
        try:
            conn = await engine.connect()
        except sa_exc.TimeoutError as exc:
            logger.warning("tenant_pool_exhausted", schema=schema_name)
            raise PoolExhausted(schema_name) from exc
        try:
            yield conn
        finally:
            await conn.close()

    def _close_token(self, schema_name: str) -> tuple:
        return self._epoch, self._generations.get(schema_name, 0)

    def _live_handle(self, schema_name: str) -> Optional[SchemaHandle]:
        handle = self._handles.get(schema_name)
        if handle is None or not handle.initialized:
            return None
        self._handles.move_to_end(schema_name)
        return handle

    def _pop_evictions(self, *, keep: str) -> List[SchemaHandle]:
        evicted: List[SchemaHandle] = []
        if self._max_pools is None:
            return evicted
        while len(self._handles) > self._max_pools:
            oldest = next(iter(self._handles))
            if oldest == keep:
                break
            evicted.append(self._handles.pop(oldest))
            self._locks.pop(oldest, None)
        return evicted

    async def _dispose(self, handle: SchemaHandle, *, reason: str) -> None:
        await handle.engine.dispose()
        handle.initialized = False
        logger.info("tenant_pool_disposed", schema=handle.schema_name, reason=reason)
