"""
Redis Streams event channel.

Manifesto:
    Multi-node deployments need events to cross process boundaries and
    survive consumer restarts. Redis Streams give an append-only log per
    topic with consumer groups, so delivery and acknowledgement map
    directly onto subscribe and commit.

Mapping::

    topic            ->  stream  "<stream_prefix>:<topic>"
    publish          ->  XADD ... NOMKSTREAM     (nil reply = unknown topic)
    subscribe        ->  XREADGROUP GROUP <group> <consumer> BLOCK <ms>
    commit_offset    ->  XACK <stream> <group> <entry-id>
    ping             ->  PING

Each stream is a single partition; offsets are entry ids.

Requires: ``pip install redis`` or ``shopkeep[redis]``

Tags:
    shopkeep, channel, redis, streams, consumer-groups, import-guarded

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any
from urllib.parse import urlsplit

from shopkeep.channel import ChannelState, Message, PublishOptions, TopicPartition
from shopkeep.channel.base import BaseChannel
from shopkeep.channel.codec import bind, encode_payload
from shopkeep.core.errors import (
    ChannelError,
    ConnectionFailureError,
    ErrorCategory,
    NotFoundError,
)

__all__ = ["RedisStreamChannel"]


@lru_cache(maxsize=1)
def _redis_errors():
    try:
        from redis import exceptions
    except ImportError as e:
        raise ImportError(
            "redis package required for RedisStreamChannel. "
            "Install with: pip install shopkeep[redis]"
        ) from e
    return exceptions


def _text(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class RedisStreamChannel(BaseChannel):
    """Redis Streams backend with consumer-group delivery.

    Example::

        channel = RedisStreamChannel("redis://localhost:6379/0", topics=["shop-events"])
        await channel.connect()

        await channel.publish_event("shop-events", {"id": "123"})
        message = await channel.subscribe()

    Parameters:
        redis_url: Connection URL; ``None`` leaves the channel unconfigured
        topics: Topics (streams) this consumer reads
        group: Consumer group name
        consumer: Consumer name within the group
        stream_prefix: Prefix for stream keys
        block_ms: Milliseconds one XREADGROUP call blocks for
        auto_create_topics: Publish creates missing streams
        client: Pre-built ``redis.asyncio.Redis`` client
    """

    name = "redis"

    def __init__(
        self,
        redis_url: str | None = "redis://localhost:6379/0",
        *,
        topics: Sequence[str] = ("shop-events",),
        group: str = "shopkeep",
        consumer: str = "shopkeep-1",
        stream_prefix: str = "shopkeep:stream",
        block_ms: int = 5000,
        auto_create_topics: bool = False,
        client: Any = None,
    ) -> None:
        super().__init__(topics, group=group)
        self._redis_url = redis_url
        self._consumer = consumer
        self._stream_prefix = stream_prefix
        self._block_ms = block_ms
        self._auto_create = auto_create_topics
        self._redis: Any = client
        if redis_url is None and client is None:
            self._state = ChannelState.UNCONFIGURED

    async def connect(self) -> None:
        """Create the Redis client (no network round trip until first use)."""
        if self._redis is not None:
            return
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required for RedisStreamChannel. "
                "Install with: pip install shopkeep[redis]"
            ) from e

        self._redis = aioredis.from_url(self._redis_url)
        self._log.info("redis_connected", host=self._host())

    def stream_name(self, topic: str) -> str:
        return f"{self._stream_prefix}:{topic}"

    def topic_name(self, stream: str) -> str:
        return stream.removeprefix(f"{self._stream_prefix}:")

    async def _call(self, operation: str, command: str, *args: Any, topic: str | None = None, **kwargs: Any) -> Any:
        errors = _redis_errors()
        if self._state == ChannelState.CLOSED:
            raise ConnectionFailureError(
                "Redis channel is closed",
                category=ErrorCategory.TRANSPORT,
            ).with_context(operation=operation, topic=topic)
        await self.connect()
        try:
            return await getattr(self._redis, command)(*args, **kwargs)
        except (errors.ConnectionError, errors.TimeoutError) as e:
            raise ConnectionFailureError(
                f"Redis unreachable: {e}",
                category=ErrorCategory.TRANSPORT,
                cause=e,
            ).with_context(operation=operation, topic=topic)
        except errors.RedisError as e:
            raise ChannelError(f"Redis {command} failed: {e}", cause=e).with_context(
                operation=operation, topic=topic
            )

    # -- Backend primitives ------------------------------------------------

    async def _deliver(self, message: Message, options: PublishOptions) -> None:
        if options.partition not in (None, 0):
            raise NotFoundError(f"{message.topic}/{options.partition}", entity="partition")

        fields = {
            "value": message.value,
            "key": message.key or "",
            "headers": encode_payload(message.headers),
            "timestamp": message.timestamp.isoformat(),
        }
        entry_id = await self._call(
            "publish_event",
            "xadd",
            self.stream_name(message.topic),
            fields,
            nomkstream=not self._auto_create,
            topic=message.topic,
        )
        if entry_id is None:
            raise NotFoundError(message.topic, entity="topic").with_context(
                operation="publish_event", topic=message.topic
            )

        message.offset = _text(entry_id)
        self._log.debug("event_published", topic=message.topic, key=message.key, offset=message.offset)

    async def _on_subscribe(self) -> None:
        errors = _redis_errors()
        for topic in self._topics:
            try:
                await self._call(
                    "subscribe",
                    "xgroup_create",
                    self.stream_name(topic),
                    self._group,
                    id="0",
                    mkstream=True,
                    topic=topic,
                )
            except ChannelError as e:
                if not (isinstance(e.cause, errors.ResponseError) and "BUSYGROUP" in str(e.cause)):
                    raise

    def _to_message(self, stream: Any, entry_id: Any, fields: dict) -> Message:
        data = {_text(k): v for k, v in fields.items()}
        headers = data.get("headers")
        timestamp = data.get("timestamp")
        value = data.get("value", b"")
        return Message(
            topic=self.topic_name(_text(stream)),
            value=value if isinstance(value, bytes) else str(value).encode("utf-8"),
            key=(_text(data["key"]) or None) if "key" in data else None,
            headers=bind(headers, dict[str, str]) if headers else {},
            partition=0,
            offset=_text(entry_id),
            timestamp=datetime.fromisoformat(_text(timestamp)) if timestamp else datetime.now(UTC),
        )

    async def _receive(self) -> Message:
        streams = {self.stream_name(topic): ">" for topic in self._topics}
        while True:
            self._ensure_open("subscribe")
            response = await self._call(
                "subscribe",
                "xreadgroup",
                self._group,
                self._consumer,
                streams,
                count=1,
                block=self._block_ms,
            )
            for stream, entries in response or []:
                for entry_id, fields in entries:
                    return self._to_message(stream, entry_id, fields)

    async def _commit(self, tp: TopicPartition) -> None:
        await self._call(
            "commit_offset",
            "xack",
            self.stream_name(tp.topic),
            self._group,
            tp.offset,
            topic=tp.topic,
        )

    async def ping(self) -> None:
        self._ensure_open("ping")
        await self._call("ping", "ping")

    async def _close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None

    def _host(self) -> str | None:
        if not self._redis_url:
            return None
        parts = urlsplit(self._redis_url)
        return f"{parts.hostname}:{parts.port or 6379}"
