"""
Structured logging for shopkeep.

Store and channel operations emit snake_case events with key/value fields
(``shop_created``, ``event_published``, ``commit_failed``). A handler runs
inside ``ctx.log_scope()``, so every event of one unit of work carries its
``request_id``.

Architecture:
    ::

        configure_from_settings(get_settings())
            │
            ▼
        configure_logging(level, json_format, service)
            │
            ▼
        processors:
          TimeStamper (iso, optional)
          merge_contextvars        ← LogContext / Context.log_scope()
          add_log_level, add_logger_name
          ServiceName(service)
          ECS field names          (JSON only)
          JSONRenderer | ConsoleRenderer

Examples:
    >>> from shopkeep.core.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", json_format=True)
    >>> get_logger(__name__).info("shop_created", shop_id=1)

Tags:
    logging, structlog, observability, json-logging, shopkeep

Doc-Types:
    - API Reference
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

if TYPE_CHECKING:
    from shopkeep.core.settings import ShopkeepSettings

# structlog key -> Elastic Common Schema key
_ECS_FIELDS = {"timestamp": "@timestamp", "level": "log.level"}


class ServiceName:
    """Processor stamping ``service.name`` on every event."""

    def __init__(self, service: str) -> None:
        self.service = service

    def __call__(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("service.name", self.service)
        return event_dict


def _ecs_field_names(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    for key, ecs_key in _ECS_FIELDS.items():
        if key in event_dict:
            event_dict[ecs_key] = event_dict.pop(key)
    return event_dict


def _build_processors(service: str, json_format: bool, add_timestamp: bool) -> list[Processor]:
    chain: list[Processor] = []
    if add_timestamp:
        chain.append(structlog.processors.TimeStamper(fmt="iso"))
    chain += [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        ServiceName(service),
    ]
    if json_format:
        chain += [_ecs_field_names, structlog.processors.JSONRenderer()]
    else:
        chain.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))
    return chain


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "shopkeep",
    add_timestamp: bool = True,
) -> None:
    """Configure structlog and the stdlib root logger.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json_format: JSON lines when true, console when false; ``None``
            picks JSON unless stdout is a terminal
        service: Value of ``service.name`` on every event
        add_timestamp: Prefix events with an ISO timestamp
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level!r}")
    if json_format is None:
        json_format = not sys.stdout.isatty()

    structlog.configure(
        processors=_build_processors(service, json_format, add_timestamp),
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)


def configure_from_settings(settings: ShopkeepSettings | None = None) -> None:
    """Apply ``log_level``, ``json_logs`` and ``service_name`` from *settings*.

    Uses :func:`~shopkeep.core.settings.get_settings` when *settings* is None.
    """
    if settings is None:
        from shopkeep.core.settings import get_settings

        settings = get_settings()
    configure_logging(
        level=settings.log_level,
        json_format=settings.json_logs,
        service=settings.service_name,
    )


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


class LogContext:
    """Bind context variables for the duration of a ``with`` block.

    Values bound outside the block are restored on exit, so scopes nest.

    Example:
        with LogContext(request_id="abc123"):
            log.info("shop_fetched")
    """

    def __init__(self, **values: Any) -> None:
        self._values = values
        self._scopes: list[Any] = []

    def __enter__(self) -> LogContext:
        scope = structlog.contextvars.bound_contextvars(**self._values)
        scope.__enter__()
        self._scopes.append(scope)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self._scopes.pop().__exit__(*exc_info)

    async def __aenter__(self) -> LogContext:
        return self.__enter__()

    async def __aexit__(self, *exc_info: Any) -> None:
        self.__exit__(*exc_info)


__all__ = [
    "LogContext",
    "ServiceName",
    "configure_from_settings",
    "configure_logging",
    "get_logger",
]
