"""Tests for RedisStreamChannel (mocked Redis client).

Verifies the stream/consumer-group mapping without a Redis server by
injecting an AsyncMock client.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError
from structlog.testing import capture_logs

from shopkeep.channel import ChannelState, PublishOptions, TopicPartition
from shopkeep.channel.redis import RedisStreamChannel
from shopkeep.core.errors import (
    ChannelError,
    ConfigError,
    ConnectionFailureError,
    ErrorCategory,
    NotFoundError,
)
from shopkeep.core.health import HealthStatus

STREAM = "shopkeep:stream:shop-events"


def _entry(entry_id=b"1700000000000-0", value=b'{"id":"1"}', key=b"1"):
    return [
        [
            STREAM.encode(),
            [
                (
                    entry_id,
                    {
                        b"value": value,
                        b"key": key,
                        b"headers": b'{"source":"test"}',
                        b"timestamp": b"2024-01-01T00:00:00+00:00",
                    },
                )
            ],
        ]
    ]


@pytest.fixture
def client():
    mock = AsyncMock()
    mock.xadd.return_value = b"1700000000000-0"
    mock.xreadgroup.return_value = _entry()
    return mock


@pytest.fixture
def channel(client):
    return RedisStreamChannel(client=client, topics=["shop-events"], group="shops", consumer="c-1")


class TestInit:
    def test_defaults(self):
        channel = RedisStreamChannel()
        assert channel._redis_url == "redis://localhost:6379/0"
        assert channel._redis is None
        assert channel.state == ChannelState.CONFIGURED
        assert channel.stream_name("t") == "shopkeep:stream:t"
        assert channel.topic_name("shopkeep:stream:t") == "t"

    @pytest.mark.asyncio
    async def test_no_url_is_unconfigured(self):
        channel = RedisStreamChannel(None)
        assert not channel.is_set()
        assert (await channel.health_check()).status == HealthStatus.DOWN
        with pytest.raises(ConfigError):
            await channel.publish_event("shop-events", {})


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_missing_redis_raises(self):
        channel = RedisStreamChannel("redis://localhost:6379/0")
        with patch.dict("sys.modules", {"redis.asyncio": None, "redis": None}):
            with pytest.raises(ImportError):
                await channel.connect()

    @pytest.mark.asyncio
    async def test_connect_from_url(self):
        channel = RedisStreamChannel("redis://cache:6380/2")
        with patch("redis.asyncio.from_url") as from_url:
            await channel.connect()
        from_url.assert_called_once_with("redis://cache:6380/2")
        assert channel._host() == "cache:6380"


class TestPublish:
    @pytest.mark.asyncio
    async def test_xadd_nomkstream(self, channel, client):
        await channel.publish_event("shop-events", {"id": "123"}, {"source": "test"})

        args, kwargs = client.xadd.call_args
        assert args[0] == STREAM
        assert args[1]["value"] == b'{"id":"123"}'
        assert args[1]["headers"] == b'{"source":"test"}'
        assert args[1]["key"] == ""
        assert kwargs["nomkstream"] is True

    @pytest.mark.asyncio
    async def test_partition_key_is_stored(self, channel, client):
        await channel.publish_event_with_options("shop-events", {}, options=PublishOptions(partition_key="123"))
        assert client.xadd.call_args.args[1]["key"] == "123"

    @pytest.mark.asyncio
    async def test_missing_stream_is_not_found(self, channel, client):
        client.xadd.return_value = None
        with pytest.raises(NotFoundError) as exc_info:
            await channel.publish_event("nope", {})
        assert exc_info.value.id == "nope"

    @pytest.mark.asyncio
    async def test_auto_create(self, client):
        channel = RedisStreamChannel(client=client, auto_create_topics=True)
        await channel.publish_event("anything", {})
        assert client.xadd.call_args.kwargs["nomkstream"] is False

    @pytest.mark.asyncio
    async def test_only_partition_zero(self, channel):
        with pytest.raises(NotFoundError):
            await channel.publish_event_with_options("shop-events", {}, options=PublishOptions(partition=1))

    @pytest.mark.asyncio
    async def test_connection_error(self, channel, client):
        client.xadd.side_effect = RedisConnectionError("refused")
        with pytest.raises(ConnectionFailureError) as exc_info:
            await channel.publish_event("shop-events", {})
        assert exc_info.value.category == ErrorCategory.TRANSPORT
        assert exc_info.value.context.topic == "shop-events"


class TestSubscribe:
    @pytest.mark.asyncio
    async def test_subscribe_reads_and_acks(self, channel, client):
        message = await channel.subscribe()

        client.xgroup_create.assert_awaited_once_with(STREAM, "shops", id="0", mkstream=True)
        client.xreadgroup.assert_awaited_with("shops", "c-1", {STREAM: ">"}, count=1, block=5000)
        client.xack.assert_awaited_once_with(STREAM, "shops", "1700000000000-0")

        assert message.topic == "shop-events"
        assert message.value == b'{"id":"1"}'
        assert message.key == "1"
        assert message.headers == {"source": "test"}
        assert message.offset == "1700000000000-0"
        assert message.timestamp.year == 2024

    @pytest.mark.asyncio
    async def test_group_created_once(self, channel, client):
        await channel.subscribe()
        await channel.subscribe()
        assert client.xgroup_create.await_count == 1

    @pytest.mark.asyncio
    async def test_existing_group_is_reused(self, channel, client):
        client.xgroup_create.side_effect = ResponseError("BUSYGROUP Consumer Group name already exists")
        message = await channel.subscribe()
        assert message.offset == "1700000000000-0"

    @pytest.mark.asyncio
    async def test_other_group_errors_raise(self, channel, client):
        client.xgroup_create.side_effect = ResponseError("WRONGTYPE Operation against a key")
        with pytest.raises(ChannelError):
            await channel.subscribe()

    @pytest.mark.asyncio
    async def test_blocks_until_entry(self, channel, client):
        client.xreadgroup.side_effect = [[], None, _entry(entry_id=b"2-0")]
        message = await channel.subscribe()
        assert message.offset == "2-0"
        assert client.xreadgroup.await_count == 3

    @pytest.mark.asyncio
    async def test_empty_key_becomes_none(self, channel, client):
        client.xreadgroup.return_value = _entry(key=b"")
        assert (await channel.subscribe()).key is None

    @pytest.mark.asyncio
    async def test_subscribe_with_commit_skips_ack(self, channel, client):
        message = await channel.subscribe_with_commit(lambda m: (False, False))
        assert message.offset == "1700000000000-0"
        client.xack.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_bind(self, channel):
        message = await channel.subscribe()
        assert channel.bind(message.value, dict) == {"id": "1"}


class TestCommitOffset:
    @pytest.mark.asyncio
    async def test_xack(self, channel, client):
        await channel.commit_offset(TopicPartition("shop-events", 0, "5-0"))
        client.xack.assert_awaited_once_with(STREAM, "shops", "5-0")

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, client):
        client.xack.side_effect = RedisConnectionError("refused")
        with capture_logs() as logs:
            channel = RedisStreamChannel(client=client)
            await channel.commit_offset(TopicPartition("shop-events", 0, "5-0"))
        assert [e["event"] for e in logs] == ["commit_failed"]


class TestHealth:
    @pytest.mark.asyncio
    async def test_up(self, channel, client):
        health = await channel.health_check()
        client.ping.assert_awaited_once()
        assert health.status == HealthStatus.UP
        assert health.name == "redis"
        assert health.host == "localhost:6379"

    @pytest.mark.asyncio
    async def test_unreachable(self, channel, client):
        client.ping.side_effect = RedisConnectionError("refused")
        with pytest.raises(ConnectionFailureError):
            await channel.ping()
        health = await channel.health_check()
        assert health.status == HealthStatus.DOWN
        assert "refused" in health.details["error"]


class TestClose:
    @pytest.mark.asyncio
    async def test_close(self, channel, client):
        await channel.close()
        client.aclose.assert_awaited_once()
        assert channel.state == ChannelState.CLOSED
        with pytest.raises(ConnectionFailureError):
            await channel.subscribe()

    @pytest.mark.asyncio
    async def test_commit_after_close_keeps_client_closed(self, client):
        with capture_logs() as logs:
            channel = RedisStreamChannel(client=client, topics=["shop-events"], group="shops", consumer="c-1")
            await channel.close()
            await channel.commit_offset(TopicPartition("shop-events", 0, "1700000000000-0"))

        assert channel._redis is None
        client.xack.assert_not_awaited()
        failed = [entry for entry in logs if entry["event"] == "commit_failed"]
        assert len(failed) == 1
