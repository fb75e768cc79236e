"""
Shopkeep - query-by-example record store and pluggable event channel.

- shopkeep.core: errors, logging, settings, health, context
- shopkeep.store: records, ExampleRepository, sessions, seeder
- shopkeep.channel: EventChannel protocol, in-memory and Redis Streams backends
- shopkeep.handlers: shop CRUD and event producer/consumer handlers
"""

__version__ = "0.1.0"

from shopkeep.core.context import Context  # noqa: E402
from shopkeep.core.errors import (  # noqa: E402
    ConnectionFailureError,
    ConstraintViolationError,
    DeserializationError,
    NotFoundError,
    ShopkeepError,
)

__all__ = [
    "Context",
    "ConnectionFailureError",
    "ConstraintViolationError",
    "DeserializationError",
    "NotFoundError",
    "ShopkeepError",
    "__version__",
]
