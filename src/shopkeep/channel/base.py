"""
Shared channel semantics.

Manifesto:
    Every transport must behave the same from a handler's point of view:
    the two publish entry points deliver identically, ``subscribe``
    auto-acknowledges, ``subscribe_with_commit`` hands acknowledgement to
    the caller, health is data and commits are best effort. Backends only
    implement the transport-specific primitives.

Backends implement:

==================  ==============================================
``_deliver``        store one message on the transport
``_receive``        wait for the next message for this consumer
``_commit``         record a committed position
``_on_subscribe``   one-time setup before the first receive
``_close``          release transport resources
``ping``            liveness probe
==================  ==============================================

Tags:
    shopkeep, channel, pub-sub, offsets, asyncio

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping, Sequence
from typing import Any, TypeVar

from shopkeep.channel import ChannelState, CommitFunc, Message, PublishOptions, TopicPartition
from shopkeep.channel.codec import bind, encode_payload
from shopkeep.core.errors import ConfigError, ConnectionFailureError, ErrorCategory, ShopkeepError
from shopkeep.core.health import Health, down
from shopkeep.core.logging import get_logger

__all__ = ["BaseChannel", "UnconfiguredChannel"]

T = TypeVar("T")


class BaseChannel:
    """Common implementation of the :class:`~shopkeep.channel.EventChannel` protocol.

    Parameters:
        topics: Topics this channel subscribes to
        group: Consumer group whose committed offsets this channel advances
    """

    name: str = "channel"

    def __init__(self, topics: Sequence[str] = (), *, group: str = "shopkeep") -> None:
        self._topics = list(topics)
        self._group = group
        self._state = ChannelState.CONFIGURED
        self._pending: set[asyncio.Task] = set()
        self._log = get_logger("shopkeep.channel").bind(channel=self.name, group=group)

    # -- State -------------------------------------------------------------

    @property
    def state(self) -> ChannelState:
        return self._state

    @property
    def topics(self) -> list[str]:
        return list(self._topics)

    @property
    def group(self) -> str:
        return self._group

    def is_set(self) -> bool:
        return self._state != ChannelState.UNCONFIGURED

    def _ensure_open(self, operation: str) -> None:
        if self._state == ChannelState.UNCONFIGURED:
            raise ConfigError(f"No {self.name} transport configured").with_context(operation=operation)
        if self._state == ChannelState.CLOSED:
            raise ConnectionFailureError(
                f"{self.name} channel is closed",
                category=ErrorCategory.TRANSPORT,
            ).with_context(operation=operation)

    # -- Publish -----------------------------------------------------------

    async def publish_event(
        self,
        topic: str,
        payload: Any,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        await self.publish_event_with_options(topic, payload, headers, None)

    async def publish_event_with_options(
        self,
        topic: str,
        payload: Any,
        headers: Mapping[str, str] | None = None,
        options: PublishOptions | None = None,
    ) -> None:
        self._ensure_open("publish_event")
        options = options or PublishOptions()
        message = Message(
            topic=topic,
            value=encode_payload(payload),
            key=options.partition_key,
            headers={str(k): str(v) for k, v in (headers or {}).items()},
        )

        if options.sync:
            await self._deliver(message, options)
            return

        task = asyncio.create_task(self._deliver_in_background(message, options))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _deliver_in_background(self, message: Message, options: PublishOptions) -> None:
        try:
            await self._deliver(message, options)
        except Exception as e:  # noqa: BLE001
            self._log.warning("publish_failed", topic=message.topic, key=message.key, error=str(e))

    # -- Subscribe ---------------------------------------------------------

    async def _start(self, operation: str) -> None:
        self._ensure_open(operation)
        if self._state == ChannelState.CONFIGURED:
            await self._on_subscribe()
            self._state = ChannelState.SUBSCRIBED

    async def subscribe(self) -> Message:
        await self._start("subscribe")
        message = await self._receive()
        self._state = ChannelState.DELIVERING
        await self.commit_offset(message.topic_partition)
        return message

    async def subscribe_with_commit(self, commit_fn: CommitFunc) -> Message:
        """Receive messages until *commit_fn* says stop.

        For each message ``commit_fn(message)`` returns ``(commit,
        keep_going)``; the offset is committed when ``commit`` is true and
        the message is returned once ``keep_going`` is false.
        """
        await self._start("subscribe_with_commit")
        while True:
            message = await self._receive()
            self._state = ChannelState.AWAITING_COMMIT

            outcome = commit_fn(message)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            commit, keep_going = outcome

            if commit:
                await self.commit_offset(message.topic_partition)
            self._state = ChannelState.DELIVERING
            if not keep_going:
                return message

    async def commit_offset(self, tp: TopicPartition) -> None:
        try:
            await self._commit(tp)
        except Exception as e:  # noqa: BLE001
            self._log.warning(
                "commit_failed",
                topic=tp.topic,
                partition=tp.partition,
                offset=tp.offset,
                error=str(e),
            )
            return
        self._log.debug("offset_committed", topic=tp.topic, partition=tp.partition, offset=tp.offset)

    # -- Bind / health -----------------------------------------------------

    def bind(self, raw: bytes | str, target: type[T]) -> T:
        return bind(raw, target)

    async def health_check(self) -> Health:
        if not self.is_set():
            return down(self.name, "not configured")
        if self._state == ChannelState.CLOSED:
            return down(self.name, "closed")
        try:
            await self.ping()
        except ShopkeepError as e:
            return down(self.name, e, state=self._state.value)
        return Health(
            name=self.name,
            host=self._host(),
            details={"state": self._state.value, "group": self._group, "topics": self.topics},
        )

    def _host(self) -> str | None:
        return None

    # -- Lifecycle ---------------------------------------------------------

    async def close(self) -> None:
        """Stop delivery, drop pending background publishes, release resources."""
        if self._state in (ChannelState.UNCONFIGURED, ChannelState.CLOSED):
            return
        self._state = ChannelState.CLOSED
        for task in list(self._pending):
            task.cancel()
        await asyncio.gather(*self._pending, return_exceptions=True)
        await self._close()
        self._log.info("channel_closed")

    # -- Backend primitives ------------------------------------------------

    async def _deliver(self, message: Message, options: PublishOptions) -> None:
        raise NotImplementedError

    async def _receive(self) -> Message:
        raise NotImplementedError

    async def _commit(self, tp: TopicPartition) -> None:
        raise NotImplementedError

    async def _on_subscribe(self) -> None:
        return None

    async def _close(self) -> None:
        return None

    async def ping(self) -> None:
        raise NotImplementedError


class UnconfiguredChannel(BaseChannel):
    """Placeholder for "no transport configured".

    ``is_set()`` is false, ``health_check()`` reports ``DOWN`` and every
    transport operation raises :class:`ConfigError`.
    """

    name = "none"

    def __init__(self) -> None:
        super().__init__()
        self._state = ChannelState.UNCONFIGURED

    async def ping(self) -> None:
        self._ensure_open("ping")
