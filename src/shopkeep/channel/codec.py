"""Payload encoding and binding for channel messages.

Payloads travel as JSON bytes. Anything pydantic can serialize is
accepted on publish (models, dataclasses, dicts, lists, scalars,
datetimes); ``bytes`` pass through untouched. ``bind`` validates raw
bytes into any type pydantic can validate.

    >>> encode_payload({"id": "123"})
    b'{"id":"123"}'
    >>> bind(b'{"id": 1, "name": "Pramod"}', dict)
    {'id': 1, 'name': 'Pramod'}
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from shopkeep.core.errors import ChannelError, DeserializationError

T = TypeVar("T")


def encode_payload(payload: Any) -> bytes:
    """Serialize *payload* to JSON bytes (``bytes`` are passed through)."""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload)
    try:
        return to_json(payload)
    except PydanticSerializationError as e:
        raise ChannelError(
            f"Payload of type {type(payload).__name__} is not serializable",
            cause=e,
        ) from e


@lru_cache(maxsize=128)
def _adapter(target: Any) -> TypeAdapter:
    return TypeAdapter(target)


def bind(raw: bytes | str, target: type[T]) -> T:
    """Decode JSON *raw* into an instance of *target*.

    Raises:
        DeserializationError: malformed JSON or a shape mismatch.
    """
    try:
        return _adapter(target).validate_json(raw)
    except ValidationError as e:
        raise DeserializationError(
            f"Cannot bind payload to {getattr(target, '__name__', target)}: "
            f"{e.error_count()} error(s)",
            cause=e,
        ) from e


__all__ = [
    "encode_payload",
    "bind",
]
