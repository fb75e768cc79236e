"""Execution context passed to every handler.

A :class:`Context` scopes one unit of work: it carries the database
session, the event channel, request parameters and a logger. Handlers run
inside :meth:`Context.log_scope`, which binds the request id to every log
event emitted by the stores and channels they call.

It is short-lived and holds no persistent state of its own; stores and
channels are reached through the handles it carries.

Example::

    ctx = Context(session=session, channel=channel)
    ctx.set_path_params({"id": "123"})
    ctx.path_param("id")          # "123"

    store = ShopStore.from_context(ctx)
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

from shopkeep.channel import EventChannel
from shopkeep.channel.base import UnconfiguredChannel
from shopkeep.channel.codec import bind
from shopkeep.core.errors import DeserializationError
from shopkeep.core.health import Health, aggregate_health, check_session
from shopkeep.core.logging import LogContext, get_logger
from shopkeep.core.protocols import Session

T = TypeVar("T")


@dataclass
class Context:
    """Per-request scope for handlers.

    Attributes:
        session: Database session satisfying :class:`~shopkeep.core.protocols.Session`.
        channel: Event channel (unconfigured when none is given).
        path_params: Named path segments (``{"id": "123"}``).
        query_params: Query-string parameters, single-valued.
        body: Raw request body, if any.
        request_id: Unique ID for this unit of work (auto-generated).
    """

    session: Session
    channel: EventChannel = field(default_factory=UnconfiguredChannel)
    path_params: dict[str, str] = field(default_factory=dict)
    query_params: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    logger: Any = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger("shopkeep.handler")

    def log_scope(self) -> LogContext:
        """Bind ``request_id`` to all log events inside a ``with`` block."""
        return LogContext(request_id=self.request_id)

    def path_param(self, key: str) -> str:
        """Path parameter *key*, or ``""`` when absent."""
        return self.path_params.get(key, "")

    def param(self, key: str) -> str:
        """Query parameter *key*, or ``""`` when absent."""
        return self.query_params.get(key, "")

    def set_path_params(self, params: Mapping[str, str]) -> None:
        """Replace the path parameters (for tests and non-HTTP callers)."""
        self.path_params = {str(k): str(v) for k, v in params.items()}

    def bind(self, target: type[T]) -> T:
        """Decode the request body into *target*.

        Raises:
            DeserializationError: no body, or it does not fit *target*.
        """
        if self.body is None:
            raise DeserializationError("Request has no body").with_context(request_id=self.request_id)
        return bind(self.body, target)

    async def health_check(self) -> Health:
        """Aggregate health of the session and the channel."""
        parts = [check_session(self.session)]
        if self.channel.is_set():
            parts.append(await self.channel.health_check())
        return aggregate_health("shopkeep", parts)


__all__ = ["Context"]
