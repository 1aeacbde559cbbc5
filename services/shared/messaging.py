"""Tenant lifecycle events on Redis Streams."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import redis.asyncio as aioredis
import structlog

logger = structlog.get_logger(__name__)


class EventPublisher:
    """Publish tenant lifecycle events (``tenant.created``, ``tenant.provisioned``,
    ``tenant.deleted`` ...) to a Redis Stream.

    Publishing is best effort: a failure is logged and never aborts the
    lifecycle operation that emitted the event.
    """

    def __init__(
        self,
        redis_url: str,
        stream_name: str,
        *,
        source: str = "tenant-service",
        maxlen: Optional[int] = 1000,
    ) -> None:
        self._stream_name = stream_name
        self._source = source
        self._maxlen = maxlen
        self._client = aioredis.from_url(redis_url)

    @property
    def stream_name(self) -> str:
        return self._stream_name

    def build_event(
        self,
        event_type: str,
        payload: Dict[str, Any],
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, str]:
        """Monta o envelope gravado no stream; todos os campos são strings."""
        event = {
            "event_type": event_type,
            "source": self._source,
            "occurred_at": datetime.now(timezone.utc).isoformat(),
            "payload": json.dumps(payload, default=str),
        }
        if metadata:
            event["metadata"] = json.dumps(metadata, default=str)
        return event

    async def publish(
        self,
        event_type: str,
        payload: Dict[str, Any],
        *,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Append an event to the stream. Returns ``False`` if Redis refused it."""
        event = self.build_event(event_type, payload, metadata)
        try:
            await self._client.xadd(
                self._stream_name,
                event,
                maxlen=self._maxlen,
                approximate=bool(self._maxlen),
            )
        except Exception:
            logger.exception("event_publish_failed", event_type=event_type, stream=self._stream_name)
            return False
        logger.debug("event_published", event_type=event_type, stream=self._stream_name)
        return True

    async def close(self) -> None:
        await self._client.aclose()
