"""
Structured error types for shopkeep.

Handlers pattern-match on what went wrong: a missing shop row and an
unreachable Cassandra node need different responses. Every store and
channel operation therefore raises exactly one typed error carrying a
category, a retry hint, structured context and the chained driver
exception.

Manifesto:
    - **Typed Error Hierarchy:** One class per failure kind callers care about
    - **Explicit Retry Hints:** Each error knows if a retry could help
    - **No Internal Retries:** Retry/backoff belongs to the caller
    - **Error Chaining:** Driver exceptions are preserved as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                      ShopkeepError                            │
        │  (category, retryable, context, cause)                       │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  NotFoundError          ConnectionFailureError                │
        │  (id, entity)           (retryable=True)                      │
        │                                                               │
        │  StoreError             ChannelError        ConfigError       │
        │  (DATABASE)             (TRANSPORT)         (CONFIG)          │
        │      │                                                        │
        │  QueryError                                                   │
        │                                                               │
        │  ConstraintViolationError     DeserializationError            │
        │  (VALIDATION)                 (PARSE)                         │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = NotFoundError("1", entity="topic")
    >>> error.id
    '1'
    >>> error.category
    <ErrorCategory.NOT_FOUND: 'NOT_FOUND'>

    >>> try:
    ...     raise OSError("connection refused")
    ... except OSError as e:
    ...     error = ConnectionFailureError("session unusable", cause=e)
    >>> error.retryable
    True

Guardrails:
    ❌ DON'T: Return an empty result when the query could not execute
    ✅ DO: Raise ConnectionFailureError so callers can tell the difference

    ❌ DON'T: Swallow the driver exception
    ✅ DO: Pass it as cause= for error chaining

Tags:
    error-handling, exception-hierarchy, retry-hints, error-context,
    shopkeep, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        NOT_FOUND: Requested entity, row or topic is absent
        DATABASE: Session, query or driver errors
        TRANSPORT: Pub/sub transport errors
        VALIDATION: Constraint violations, invalid keys
        PARSE: Payload decoding errors
        CONFIG: Missing or invalid settings
        INTERNAL: Bugs, unexpected state
    """

    NOT_FOUND = "NOT_FOUND"
    DATABASE = "DATABASE"
    TRANSPORT = "TRANSPORT"
    VALIDATION = "VALIDATION"
    PARSE = "PARSE"
    CONFIG = "CONFIG"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error for logging.

    Attributes:
        operation: Store or channel operation (``get``, ``publish_event``)
        entity: Entity type or table (``shop``)
        topic: Channel topic, when relevant
        request_id: Id of the unit of work that raised
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    entity: str | None = None
    topic: str | None = None
    request_id: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "entity", "topic", "request_id"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class ShopkeepError(Exception):
    """
    Base exception for all shopkeep errors.

    Subclasses set ``default_category`` and ``default_retryable`` so that
    raising sites only pass what differs from the defaults.

    Examples:
        >>> error = ShopkeepError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>

        >>> error = ShopkeepError("Insert failed").with_context(
        ...     operation="create", entity="shop"
        ... )
        >>> error.context.entity
        'shop'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> ShopkeepError:
        """
        Add context to this error (fluent API).

        Usage:
            raise QueryError("Select failed").with_context(
                operation="get", entity="shop"
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }

        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict

        if self.cause is not None:
            result["cause"] = str(self.cause)

        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# NOT FOUND
# =============================================================================


class NotFoundError(ShopkeepError):
    """
    Requested entity is absent.

    Raised by the store for a missing row on update (or on delete under the
    strict delete policy) and by channels for an unknown topic. Carries the
    offending identifier as a string so callers can compare it regardless of
    the key's native type.
    """

    default_category = ErrorCategory.NOT_FOUND
    default_retryable = False

    def __init__(self, id: Any, *, entity: str = "entity", message: str | None = None, **kwargs: Any):
        self.id = str(id)
        self.entity = entity
        super().__init__(message or f"No '{entity}' found for id: {self.id}", **kwargs)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["id"] = self.id
        result["entity"] = self.entity
        return result


# =============================================================================
# CONNECTIVITY
# =============================================================================


class ConnectionFailureError(ShopkeepError):
    """Underlying session or transport is unusable (closed, unreachable, timed out)."""

    default_category = ErrorCategory.DATABASE
    default_retryable = True


# =============================================================================
# STORE / CHANNEL
# =============================================================================


class StoreError(ShopkeepError):
    """Database statement or result-handling error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class QueryError(StoreError):
    """Statement was rejected by the database."""

    pass


class ChannelError(ShopkeepError):
    """Transport rejected an operation for a reason other than connectivity."""

    default_category = ErrorCategory.TRANSPORT
    default_retryable = False


# =============================================================================
# VALIDATION / PARSE
# =============================================================================


class ConstraintViolationError(ShopkeepError):
    """
    Constraint violation: duplicate key on create, or an invalid merge
    target (missing or malformed key) on update/delete.

    Never retryable - the input must change.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class DeserializationError(ShopkeepError):
    """Raw payload could not be decoded into the requested shape."""

    default_category = ErrorCategory.PARSE
    default_retryable = False


# =============================================================================
# CONFIGURATION
# =============================================================================


class ConfigError(ShopkeepError):
    """Configuration is missing or invalid."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is worth retrying by the caller."""
    if isinstance(error, ShopkeepError):
        return error.retryable
    return isinstance(error, (ConnectionError, TimeoutError))


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "ShopkeepError",
    "NotFoundError",
    "ConnectionFailureError",
    "StoreError",
    "QueryError",
    "ChannelError",
    "ConstraintViolationError",
    "DeserializationError",
    "ConfigError",
    "is_retryable",
]
