"""Statement dialect abstraction for the record store.

The store speaks one small statement vocabulary (select-by-example,
insert, conditional update, delete) against two very different backends:
Cassandra/YCQL in production and SQLite for local runs and tests. A
``Dialect`` supplies the fragments that differ so ``ExampleRepository``
never branches on the backend.

Architecture::

    ┌──────────────────────────────────────────────────────────────────┐
    │  ExampleRepository                                               │
    │    sql = f"INSERT INTO t (a, b) VALUES ({d.placeholders(2)})"    │
    │    sql += d.if_not_exists()                                      │
    └──────────────────────────────────────────────────────────────────┘
                     │                            │
                     ▼                            ▼
           ┌──────────────────┐        ┌──────────────────────────┐
           │ SQLiteDialect    │        │ CQLDialect               │
           │ ?, ?             │        │ %s, %s                   │
           │ (PK constraint)  │        │ IF NOT EXISTS / IF EXISTS│
           │                  │        │ ALLOW FILTERING          │
           └──────────────────┘        └──────────────────────────┘

Examples:
    >>> CQLDialect().placeholders(3)
    '%s, %s, %s'
    >>> SQLiteDialect().if_exists()
    ''

Tags:
    dialect, cql, sqlite, abstraction, portability, shopkeep
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """Statement dialect contract.

    Every method returns a statement fragment valid for the target
    database; an empty string means the backend needs nothing there.
    """

    @property
    def name(self) -> str:
        """Human-readable dialect name (e.g. ``'cql'``)."""
        ...

    def placeholder(self, index: int) -> str:
        """Single positional placeholder (0-based index)."""
        ...

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list."""
        ...

    def if_not_exists(self) -> str:
        """Suffix turning an INSERT into a compare-and-set insert."""
        ...

    def if_exists(self) -> str:
        """Suffix turning an UPDATE/DELETE into a compare-and-set write."""
        ...

    def allow_filtering(self, key_only: bool) -> str:
        """Suffix required for a SELECT filtering on non-key columns."""
        ...

    def probe_statement(self) -> str:
        """Cheapest statement proving the session can execute."""
        ...

    def truncate_statement(self, table: str) -> str:
        """Statement removing every row of *table*."""
        ...


class SQLiteDialect:
    """SQLite: ``?`` placeholders; uniqueness comes from the primary key.

    Conditional writes are reported through the statement's rowcount,
    which the SQLite session surfaces as ``ResultRows.applied``.
    """

    @property
    def name(self) -> str:
        return "sqlite"

    def placeholder(self, index: int) -> str:
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    def if_not_exists(self) -> str:
        return ""

    def if_exists(self) -> str:
        return ""

    def allow_filtering(self, key_only: bool) -> str:
        return ""

    def probe_statement(self) -> str:
        return "SELECT 1"

    def truncate_statement(self, table: str) -> str:
        return f"DELETE FROM {table}"


class CQLDialect:
    """Cassandra / YugabyteDB YCQL.

    Simple (non-prepared) statements use ``%s`` placeholders. Conditional
    writes are lightweight transactions whose outcome arrives in the
    ``[applied]`` result column.
    """

    @property
    def name(self) -> str:
        return "cql"

    def placeholder(self, index: int) -> str:
        return "%s"

    def placeholders(self, count: int) -> str:
        return ", ".join("%s" for _ in range(count))

    def if_not_exists(self) -> str:
        return " IF NOT EXISTS"

    def if_exists(self) -> str:
        return " IF EXISTS"

    def allow_filtering(self, key_only: bool) -> str:
        return "" if key_only else " ALLOW FILTERING"

    def probe_statement(self) -> str:
        return "SELECT release_version FROM system.local"

    def truncate_statement(self, table: str) -> str:
        return f"TRUNCATE {table}"


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "CQLDialect",
]
