"""Testes para publicação de eventos de tenant em Redis Streams."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from shared.messaging import EventPublisher


def _publisher(client, **kwargs):
    with patch("shared.messaging.aioredis.from_url", return_value=client):
        return EventPublisher("redis://localhost:6379/0", "tenant-events", **kwargs)


class TestEventPublisher:
    def test_envelope_carries_source_and_timestamp(self):
        publisher = _publisher(MagicMock(), source="tenant-cli")

        event = publisher.build_event("tenant.provisioned", {"schema_name": "tenant_acmegym"})

        assert event["source"] == "tenant-cli"
        assert event["occurred_at"].endswith("+00:00")
        assert "metadata" not in event
        assert publisher.stream_name == "tenant-events"

    @pytest.mark.asyncio
    async def test_publish_serializes_payload(self):
        client = MagicMock()
        client.xadd = AsyncMock()
        publisher = _publisher(client)

        published = await publisher.publish(
            "tenant.created", {"domain": "acme-gym"}, metadata={"tenant_domain": "acme-gym"}
        )

        assert published is True
        stream, event = client.xadd.await_args.args
        assert stream == "tenant-events"
        assert event["event_type"] == "tenant.created"
        assert json.loads(event["payload"]) == {"domain": "acme-gym"}
        assert json.loads(event["metadata"]) == {"tenant_domain": "acme-gym"}
        assert client.xadd.await_args.kwargs["maxlen"] == 1000
        assert client.xadd.await_args.kwargs["approximate"] is True

    @pytest.mark.asyncio
    async def test_unbounded_stream_is_not_approximate(self):
        client = MagicMock()
        client.xadd = AsyncMock()

        await _publisher(client, maxlen=None).publish("tenant.deleted", {})

        assert client.xadd.await_args.kwargs["approximate"] is False

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_raise(self):
        client = MagicMock()
        client.xadd = AsyncMock(side_effect=ConnectionError("redis down"))
        publisher = _publisher(client)

        assert await publisher.publish("tenant.deleted", {"domain": "acme-gym"}) is False
        client.xadd.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close(self):
        client = MagicMock()
        client.aclose = AsyncMock()
        await _publisher(client).close()
        client.aclose.assert_awaited_once()
