"""Event channel: pluggable publish/subscribe with offset commits.

Why This Package Exists
-----------------------
Handlers publish shop events and consume them without knowing which
transport carries them. The ``EventChannel`` protocol fixes the nine
operations every transport offers (publish with and without options,
subscribe with and without manual commit, bind, ping, health, is-set,
commit offset); backends plug in behind it.

Usage::

    from shopkeep.channel import PublishOptions
    from shopkeep.channel.memory import InMemoryChannel

    channel = InMemoryChannel(topics=["shop-events"])

    await channel.publish_event("shop-events", {"id": "123"}, {"source": "api"})
    message = await channel.subscribe()
    event = channel.bind(message.value, ShopEvent)

    # Caller-controlled acknowledgement: commit, then stop.
    message = await channel.subscribe_with_commit(lambda m: (True, False))

Subscription lifecycle::

    UNCONFIGURED → CONFIGURED → SUBSCRIBED → DELIVERING ⇄ AWAITING_COMMIT
                                                 ↓
                                               CLOSED

``AWAITING_COMMIT`` only occurs under ``subscribe_with_commit``.

Modules
-------
codec       encode_payload / bind (pydantic JSON)
base        BaseChannel (shared semantics), UnconfiguredChannel
memory      InMemoryChannel -- asyncio, single process
redis       RedisStreamChannel -- Redis Streams + consumer groups
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, runtime_checkable

from shopkeep.channel.codec import bind

if TYPE_CHECKING:
    from shopkeep.core.health import Health

__all__ = [
    "ChannelState",
    "CommitFunc",
    "EventChannel",
    "Message",
    "PublishOptions",
    "TopicPartition",
]

T = TypeVar("T")


# ── Data Model ───────────────────────────────────────────────────────────


class ChannelState(str, Enum):
    """Subscription lifecycle of a channel."""

    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    SUBSCRIBED = "subscribed"
    DELIVERING = "delivering"
    AWAITING_COMMIT = "awaiting_commit"
    CLOSED = "closed"


@dataclass(frozen=True)
class TopicPartition:
    """Position in one partition of a topic.

    ``offset`` is an int for log-structured backends and the entry id
    (``"1700000000000-0"``) for Redis Streams.
    """

    topic: str
    partition: int = 0
    offset: int | str = 0


@dataclass(frozen=True)
class PublishOptions:
    """Per-publish delivery settings.

    Defaults reproduce plain ``publish_event``.

    Attributes:
        partition_key: Routing key; same key, same partition
        partition: Explicit partition (overrides the key)
        sync: False schedules delivery and returns immediately; failures
            are then logged instead of raised
    """

    partition_key: str | None = None
    partition: int | None = None
    sync: bool = True


@dataclass
class Message:
    """One delivered event.

    Attributes:
        topic: Topic the message was published to
        value: JSON-encoded payload
        key: Routing key, if any
        headers: String headers supplied by the producer
        partition: Partition the message landed on
        offset: Position within the partition
        timestamp: Publish time (UTC)
    """

    topic: str
    value: bytes
    key: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    partition: int = 0
    offset: int | str = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def topic_partition(self) -> TopicPartition:
        return TopicPartition(self.topic, self.partition, self.offset)

    def bind(self, target: type[T]) -> T:
        """Decode the payload into *target*."""
        return bind(self.value, target)


# ── Type Aliases ─────────────────────────────────────────────────────────

# Returns (commit, keep_going) for a received message.
CommitFunc = Callable[[Message], tuple[bool, bool] | Awaitable[tuple[bool, bool]]]


# ── EventChannel Protocol ────────────────────────────────────────────────


@runtime_checkable
class EventChannel(Protocol):
    """Protocol for event channel implementations."""

    async def publish_event(
        self,
        topic: str,
        payload: Any,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Deliver *payload* to *topic*.

        Raises:
            NotFoundError: the topic (or partition) does not exist
        """
        ...

    async def publish_event_with_options(
        self,
        topic: str,
        payload: Any,
        headers: Mapping[str, str] | None = None,
        options: PublishOptions | None = None,
    ) -> None:
        """Same as :meth:`publish_event` with delivery tuning."""
        ...

    async def subscribe(self) -> Message:
        """Wait for the next message and acknowledge it on receipt."""
        ...

    async def subscribe_with_commit(self, commit_fn: CommitFunc) -> Message:
        """Wait for messages, letting *commit_fn* decide commit and stop."""
        ...

    def bind(self, raw: bytes | str, target: type[T]) -> T:
        """Decode raw payload bytes into *target*."""
        ...

    async def ping(self) -> None:
        """Raise ``ConnectionFailureError`` if the transport is unreachable."""
        ...

    async def health_check(self) -> Health:
        """Structured status; never raises."""
        ...

    def is_set(self) -> bool:
        """Whether a transport is configured at all."""
        ...

    async def commit_offset(self, tp: TopicPartition) -> None:
        """Advance the committed position; failures are logged, not raised."""
        ...
