"""
Canonical protocol definitions for shopkeep.

Manifesto:
    The record store depends on the shape of a database session, not on a
    driver. Anything that can execute a parameterized statement, report
    whether it is closed and close itself can back a store: the SQLite
    adapter in tests, a cassandra-driver session in production.

Architecture:
    ::

        protocols.py
        ├── ResultRows   — rows + compare-and-set outcome of one statement
        └── Session      — execute / close / closed / dialect

    The event channel contract lives with its data types in
    :mod:`shopkeep.channel`.

Tags:
    protocol, session, database, contracts, shopkeep

Doc-Types:
    - API Reference
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from shopkeep.core.dialect import Dialect


@dataclass
class ResultRows:
    """Outcome of one executed statement.

    Attributes:
        rows: Result rows as plain dicts (empty for writes)
        applied: False when a conditional write (``IF EXISTS`` /
            ``IF NOT EXISTS``, or a write that matched no row) did not apply
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    applied: bool = True

    def __iter__(self):
        return iter(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def one(self) -> dict[str, Any] | None:
        """First row or None."""
        return self.rows[0] if self.rows else None


@runtime_checkable
class Session(Protocol):
    """
    Minimal database session interface used by the record store.

    Implementations must be safe to share between concurrent callers and
    must raise :class:`~shopkeep.core.errors.ConnectionFailureError` when
    used after ``close()``.

    Examples:
        >>> def count_shops(session: Session) -> int:
        ...     return len(session.execute("SELECT id FROM shop"))
    """

    @property
    def dialect(self) -> Dialect:
        """Statement dialect understood by this session."""
        ...

    @property
    def closed(self) -> bool:
        """True once ``close()`` has been called or the connection is lost."""
        ...

    def execute(self, statement: str, params: Sequence[Any] = ()) -> ResultRows:
        """Execute one parameterized statement."""
        ...

    def close(self) -> None:
        """Release the underlying connection."""
        ...


__all__ = [
    "ResultRows",
    "Session",
]
