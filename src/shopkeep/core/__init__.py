"""Shopkeep Core -- errors, logging, settings, health and the handler context.

Manifesto:
    Stores and channels share one error taxonomy, one logging setup and one
    settings model. Drivers (``cassandra-driver``, ``redis``) are never
    imported here; they load lazily in the factories that need them.

    - **Typed errors:** Every failure is exactly one ``ShopkeepError`` subclass
    - **Protocol-first:** Session and Dialect are protocols, not classes
    - **Import-guarded extras:** Cassandra and Redis loaded on demand

Architecture::

    errors.py       Structured error hierarchy (ShopkeepError, NotFoundError, ...)
    logging.py      structlog configuration and context binding
    settings.py     pydantic-settings models (store, channel, service)
    dialect.py      SQLite / CQL statement differences
    protocols.py    Session protocol, ResultRows
    health.py       Health model, session probe, aggregation
    factory.py      create_session / create_channel
    context.py      Context handed to handlers

Tags:
    shopkeep, core, errors, logging, settings, protocols

Doc-Types:
    package-overview
"""

from shopkeep.core.errors import (
    ChannelError,
    ConfigError,
    ConnectionFailureError,
    ConstraintViolationError,
    DeserializationError,
    ErrorCategory,
    NotFoundError,
    QueryError,
    ShopkeepError,
    StoreError,
    is_retryable,
)
from shopkeep.core.health import Health, HealthStatus
from shopkeep.core.logging import LogContext, configure_from_settings, configure_logging, get_logger
from shopkeep.core.settings import (
    ChannelBackend,
    DatabaseBackend,
    DeletePolicy,
    ShopkeepSettings,
    get_settings,
)

__all__ = [
    "ChannelBackend",
    "ChannelError",
    "ConfigError",
    "ConnectionFailureError",
    "ConstraintViolationError",
    "DatabaseBackend",
    "DeletePolicy",
    "DeserializationError",
    "ErrorCategory",
    "Health",
    "HealthStatus",
    "LogContext",
    "NotFoundError",
    "QueryError",
    "ShopkeepError",
    "ShopkeepSettings",
    "StoreError",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
    "get_settings",
    "is_retryable",
]
