"""Async lifespan helpers shared by FastAPI services."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional, Sequence

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import OperationalError

logger = structlog.get_logger(__name__)

Hook = Callable[[], Awaitable[object]]


@asynccontextmanager
async def database_lifespan(
    _: FastAPI,
    *,
    service_name: str,
    prepare: Hook,
    shutdown: Sequence[Hook] = (),
    retries: int = 10,
    wait_seconds: float = 2.0,
):
    """Prepare the control database before serving, release pools on exit.

    ``prepare`` is retried while the database refuses connections; the
    ``shutdown`` hooks run in order even when one of them fails.
    """
    for attempt in range(retries):
        try:
            await prepare()
            break
        except OperationalError as exc:  # pragma: no cover - only triggered when DB is down
            if attempt == retries - 1:
                logger.error("database_unavailable", service=service_name, attempts=retries)
                raise
            logger.warning(
                "database_unavailable_retrying",
                service=service_name,
                attempt=attempt + 1,
                wait_seconds=wait_seconds,
                error=str(exc),
            )
            await asyncio.sleep(wait_seconds)
    try:
        yield
    finally:
        for hook in shutdown:
            try:
                await hook()
            except Exception:
                logger.exception("shutdown_hook_failed", service=service_name)


def database_lifespan_factory(
    *,
    service_name: str,
    prepare: Hook,
    shutdown: Optional[Sequence[Hook]] = None,
    retries: int = 10,
    wait_seconds: float = 2.0,
):
    """Return a FastAPI lifespan callable pre-configured for database initialization."""

    hooks = tuple(shutdown) if shutdown else ()

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        async with database_lifespan(
            app,
            service_name=service_name,
            prepare=prepare,
            shutdown=hooks,
            retries=retries,
            wait_seconds=wait_seconds,
        ):
            yield

    return _lifespan
