"""
Factory functions that create sessions and channels from settings.

Manifesto:
    Each factory imports its backend lazily so that optional drivers
    (``cassandra-driver``, ``redis``) are only loaded when that backend is
    actually selected.  ``import shopkeep`` stays dependency-light.

Features:
    - ``create_session()`` -- SQLite / Cassandra session
    - ``create_channel()`` -- in-memory / Redis Streams / unconfigured channel

Tags:
    shopkeep, configuration, factory-pattern, lazy-imports, cassandra, redis

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from shopkeep.core.settings import ChannelBackend, DatabaseBackend

if TYPE_CHECKING:
    from shopkeep.channel.base import BaseChannel
    from shopkeep.core.protocols import Session
    from shopkeep.core.settings import ChannelSettings, StoreSettings


def create_session(settings: StoreSettings) -> Session:
    """Open a database session for *settings.backend*.

    Raises:
        ConnectionFailureError: the cluster cannot be reached.
        ImportError: the Cassandra backend is selected but
            ``cassandra-driver`` is not installed.
    """
    match settings.backend:
        case DatabaseBackend.SQLITE:
            from shopkeep.store.sessions import SQLiteSession

            return SQLiteSession(settings.sqlite_path)
        case DatabaseBackend.CASSANDRA:
            from shopkeep.store.sessions import CassandraSession

            return CassandraSession.connect(settings)


def create_channel(settings: ChannelSettings) -> BaseChannel:
    """Build an event channel for *settings.backend*.

    ``ChannelBackend.NONE`` yields a channel whose ``is_set()`` is false.
    """
    match settings.backend:
        case ChannelBackend.NONE:
            from shopkeep.channel.base import UnconfiguredChannel

            return UnconfiguredChannel()
        case ChannelBackend.MEMORY:
            from shopkeep.channel.memory import InMemoryChannel

            return InMemoryChannel(
                settings.topics,
                partitions=settings.partitions,
                group=settings.group,
                auto_create_topics=settings.auto_create_topics,
            )
        case ChannelBackend.REDIS:
            from shopkeep.channel.redis import RedisStreamChannel

            return RedisStreamChannel(
                settings.redis_url,
                topics=settings.topics,
                group=settings.group,
                consumer=settings.consumer,
                stream_prefix=settings.stream_prefix,
                block_ms=settings.block_ms,
                auto_create_topics=settings.auto_create_topics,
            )


__all__ = ["create_session", "create_channel"]
