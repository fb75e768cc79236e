"""
In-memory event channel.

Manifesto:
    Single-process deployments and test suites need a channel with real
    topic, partition and offset semantics but no external infrastructure.

Topics are lists of partitions; each partition is an append-only list of
messages whose index is the offset. The channel keeps one delivery cursor
and one committed offset per partition for its consumer group. Nothing is
persisted.

Tags:
    shopkeep, channel, in-memory, asyncio, testing, single-node

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import zlib
from collections.abc import Sequence

from shopkeep.channel import ChannelState, Message, PublishOptions, TopicPartition
from shopkeep.channel.base import BaseChannel
from shopkeep.core.errors import ConnectionFailureError, ErrorCategory, NotFoundError

__all__ = ["InMemoryChannel"]


class InMemoryChannel(BaseChannel):
    """In-process channel with partitioned topics and committed offsets.

    Messages with the same ``partition_key`` land on the same partition
    (``crc32(key) % partitions``); messages without a key are spread
    round-robin. ``subscribe`` reads every partition of every declared
    topic, oldest partition first.

    Example::

        channel = InMemoryChannel(topics=["shop-events"], partitions=3)

        await channel.publish_event_with_options(
            "shop-events", {"id": "123"}, options=PublishOptions(partition_key="123")
        )
        message = await channel.subscribe()
        channel.committed("shop-events", message.partition)   # message.offset

    Parameters:
        topics: Topics created up front and subscribed to
        partitions: Partitions per topic
        group: Consumer group name (used in logs and health)
        auto_create_topics: Publish to an unknown topic creates it instead
            of raising :class:`NotFoundError`
    """

    name = "memory"

    def __init__(
        self,
        topics: Sequence[str] = ("shop-events",),
        *,
        partitions: int = 1,
        group: str = "shopkeep",
        auto_create_topics: bool = False,
    ) -> None:
        if partitions < 1:
            raise ValueError("partitions must be >= 1")
        super().__init__(topics, group=group)
        self._partitions = partitions
        self._auto_create = auto_create_topics
        self._logs: dict[str, list[list[Message]]] = {}
        self._positions: dict[tuple[str, int], int] = {}
        self._committed: dict[tuple[str, int], int] = {}
        self._round_robin: dict[str, int] = {}
        self._cond = asyncio.Condition()

        for topic in self._topics:
            self.create_topic(topic)

    # -- Topics ------------------------------------------------------------

    def create_topic(self, topic: str, partitions: int | None = None) -> None:
        """Create *topic* if it does not exist yet."""
        if topic not in self._logs:
            self._logs[topic] = [[] for _ in range(partitions or self._partitions)]

    def has_topic(self, topic: str) -> bool:
        return topic in self._logs

    def messages(self, topic: str) -> list[Message]:
        """Every message currently stored on *topic*, partition by partition."""
        if topic not in self._logs:
            raise NotFoundError(topic, entity="topic")
        return [m for partition in self._logs[topic] for m in partition]

    def committed(self, topic: str, partition: int = 0) -> int | None:
        """Last committed offset for a partition, or None."""
        return self._committed.get((topic, partition))

    def seek_to_committed(self) -> None:
        """Rewind delivery to just after the committed offsets.

        Messages delivered but never committed are delivered again.
        """
        self._positions = {
            tp: offset + 1 for tp, offset in self._committed.items()
        }

    # -- Backend primitives ------------------------------------------------

    def _route(self, topic: str, key: str | None, options: PublishOptions) -> int:
        count = len(self._logs[topic])
        if options.partition is not None:
            if not 0 <= options.partition < count:
                raise NotFoundError(f"{topic}/{options.partition}", entity="partition")
            return options.partition
        if key is not None:
            return zlib.crc32(key.encode("utf-8")) % count
        partition = self._round_robin.get(topic, 0)
        self._round_robin[topic] = (partition + 1) % count
        return partition

    async def _deliver(self, message: Message, options: PublishOptions) -> None:
        async with self._cond:
            if message.topic not in self._logs:
                if not self._auto_create:
                    raise NotFoundError(message.topic, entity="topic").with_context(
                        operation="publish_event", topic=message.topic
                    )
                self.create_topic(message.topic)

            partition = self._route(message.topic, message.key, options)
            log = self._logs[message.topic][partition]
            message.partition = partition
            message.offset = len(log)
            log.append(message)
            self._cond.notify_all()

        self._log.debug(
            "event_published",
            topic=message.topic,
            key=message.key,
            partition=message.partition,
            offset=message.offset,
        )

    def _next_available(self) -> Message | None:
        for topic in self._topics:
            for partition, log in enumerate(self._logs.get(topic, [])):
                position = self._positions.get((topic, partition), 0)
                if position < len(log):
                    self._positions[(topic, partition)] = position + 1
                    return log[position]
        return None

    async def _receive(self) -> Message:
        async with self._cond:
            while True:
                if self._state == ChannelState.CLOSED:
                    raise ConnectionFailureError(
                        "memory channel closed while waiting",
                        category=ErrorCategory.TRANSPORT,
                    ).with_context(operation="subscribe")
                message = self._next_available()
                if message is not None:
                    return message
                await self._cond.wait()

    async def _commit(self, tp: TopicPartition) -> None:
        partitions = self._logs.get(tp.topic)
        if partitions is None:
            raise NotFoundError(tp.topic, entity="topic")
        if not 0 <= tp.partition < len(partitions):
            raise NotFoundError(f"{tp.topic}/{tp.partition}", entity="partition")
        self._committed[(tp.topic, tp.partition)] = int(tp.offset)

    async def _close(self) -> None:
        async with self._cond:
            self._cond.notify_all()

    async def ping(self) -> None:
        self._ensure_open("ping")

    def _host(self) -> str | None:
        return "in-process"
