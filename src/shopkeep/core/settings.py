"""
Centralized settings for shopkeep.

Manifesto:
    Connection details for the database session and the event transport
    are supplied by configuration, never hard-coded in the store or the
    channel. One validated settings object resolves them from ``SHOPKEEP_*``
    environment variables and ``.env`` files.

Features:
    - **StoreSettings:** backend, host, port, credentials, keyspace (``SHOPKEEP_DB_``)
    - **ChannelSettings:** backend, redis url, topics, group (``SHOPKEEP_CHANNEL_``)
    - **ShopkeepSettings:** log level/format, delete policy, nested sections
    - **Extra ignore:** Unknown env vars don't cause startup failures

Examples:
    >>> import os
    >>> os.environ["SHOPKEEP_DB_BACKEND"] = "cassandra"
    >>> StoreSettings().backend
    <DatabaseBackend.CASSANDRA: 'cassandra'>

Tags:
    settings, configuration, pydantic, environment, shopkeep

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class DatabaseBackend(str, Enum):
    """Supported database session backends."""

    SQLITE = "sqlite"
    CASSANDRA = "cassandra"


class ChannelBackend(str, Enum):
    """Supported event channel backends."""

    NONE = "none"
    MEMORY = "memory"
    REDIS = "redis"


class DeletePolicy(str, Enum):
    """What ``delete`` does when no row exists for the id.

    IDEMPOTENT: succeed silently.
    STRICT: raise ``NotFoundError``.
    """

    IDEMPOTENT = "idempotent"
    STRICT = "strict"


class StoreSettings(BaseSettings):
    """Database session configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SHOPKEEP_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: DatabaseBackend = DatabaseBackend.SQLITE

    # ── Cassandra / YCQL ─────────────────────────────────────────
    hosts: str = "localhost"
    port: int = 9042
    username: str | None = None
    password: str | None = None
    keyspace: str = "shopkeep"
    connect_timeout_s: float = 10.0

    # ── SQLite ───────────────────────────────────────────────────
    sqlite_path: str = ":memory:"

    @property
    def host_list(self) -> list[str]:
        """Comma-separated ``hosts`` as a list."""
        return [h.strip() for h in self.hosts.split(",") if h.strip()]


class ChannelSettings(BaseSettings):
    """Event channel configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SHOPKEEP_CHANNEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    backend: ChannelBackend = ChannelBackend.MEMORY

    topics: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["shop-events"])
    partitions: int = Field(default=1, ge=1)
    auto_create_topics: bool = False
    group: str = "shopkeep"
    consumer: str = "shopkeep-1"

    # ── Redis Streams ────────────────────────────────────────────
    redis_url: str | None = "redis://localhost:6379/0"
    stream_prefix: str = "shopkeep:stream"
    block_ms: int = Field(default=5000, ge=1)

    @field_validator("topics", mode="before")
    @classmethod
    def _split_topics(cls, value: object) -> object:
        if isinstance(value, str):
            return [t.strip() for t in value.split(",") if t.strip()]
        return value


class ShopkeepSettings(BaseSettings):
    """Top-level configuration.

    All fields can be set via ``SHOPKEEP_*`` environment variables
    (e.g. ``SHOPKEEP_DELETE_POLICY=strict``).
    """

    model_config = SettingsConfigDict(
        env_prefix="SHOPKEEP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    service_name: str = "shopkeep"
    log_level: str = "INFO"
    json_logs: bool | None = None

    delete_policy: DeletePolicy = DeletePolicy.IDEMPOTENT

    store: StoreSettings = Field(default_factory=StoreSettings)
    channel: ChannelSettings = Field(default_factory=ChannelSettings)


@lru_cache(maxsize=1)
def get_settings() -> ShopkeepSettings:
    """Return the cached process-wide settings."""
    return ShopkeepSettings()


__all__ = [
    "DatabaseBackend",
    "ChannelBackend",
    "DeletePolicy",
    "StoreSettings",
    "ChannelSettings",
    "ShopkeepSettings",
    "get_settings",
]
