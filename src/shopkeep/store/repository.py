"""Query-by-example repository over a single table.

Provides :class:`ExampleRepository`, a generic base pairing a
:class:`~shopkeep.core.protocols.Session` with a
:class:`~shopkeep.store.models.Record` type so that entity stores get
query-by-example reads and merge updates without writing statements.

Architecture::

    ┌────────────────────────────────────────────────────────────────────┐
    │                  ExampleRepository[T: Record]                      │
    │                                                                    │
    │   session: Session        ← protocol from shopkeep.core.protocols  │
    │   dialect: Dialect        ← taken from the session                 │
    │                                                                    │
    │   get(example)    → list[T]   assigned fields AND-ed, key order    │
    │   create(record)  → list[T]   INSERT [IF NOT EXISTS]               │
    │   update(patch)   → list[T]   read, merge, UPDATE [IF EXISTS]      │
    │   delete(id)      → None      DeletePolicy decides on missing rows │
    └────────────────────────────────────────────────────────────────────┘

Every call is one logical operation against the session; nothing is
cached between calls, so one repository may be shared by concurrent
units of work. Conflicting concurrent writes are left to the database's
compare-and-set and surfaced as typed errors.

Usage:
    >>> class ShopStore(ExampleRepository[Shop]):
    ...     model = Shop
    >>> store = ShopStore(session)
    >>> store.get(Shop(name="Pramod"))
    [Shop(id=1, name='Pramod', location='Gaya', state='Bihar')]

Tags:
    repository, query-by-example, partial-update, database, shopkeep
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from shopkeep.core.errors import ConstraintViolationError, NotFoundError, ShopkeepError
from shopkeep.core.logging import get_logger
from shopkeep.core.protocols import ResultRows, Session
from shopkeep.core.settings import DeletePolicy
from shopkeep.store.models import Record

if TYPE_CHECKING:
    from shopkeep.core.context import Context

T = TypeVar("T", bound=Record)


class ExampleRepository(Generic[T]):
    """Query-by-example and merge-update access to one table.

    Subclasses set :attr:`model`.

    Parameters:
        session: Any object satisfying the :class:`Session` protocol.
        delete_policy: Behavior of :meth:`delete` for a missing id.
            Defaults to :attr:`DeletePolicy.IDEMPOTENT`.
    """

    model: type[T]

    def __init__(
        self,
        session: Session,
        *,
        delete_policy: DeletePolicy = DeletePolicy.IDEMPOTENT,
    ) -> None:
        self.session = session
        self.delete_policy = delete_policy
        self._log = get_logger(__name__).bind(entity=self.table)

    @classmethod
    def from_context(cls, ctx: Context, **kwargs: Any):
        """Create a repository on the session carried by *ctx*."""
        return cls(ctx.session, **kwargs)

    # -- Convenience shortcuts ---------------------------------------------

    @property
    def table(self) -> str:
        return self.model.table_name

    @property
    def key_field(self) -> str:
        return self.model.key_field

    def ph(self, count: int) -> str:
        """Shortcut for ``self.session.dialect.placeholders(count)``."""
        return self.session.dialect.placeholders(count)

    def _execute(self, operation: str, statement: str, params: Sequence[Any]) -> ResultRows:
        try:
            return self.session.execute(statement, params)
        except ShopkeepError as exc:
            self._log.warning("statement_failed", operation=operation, error=str(exc))
            raise exc.with_context(operation=operation, entity=self.table)

    def _key_example(self, key: Any) -> T:
        return self.model(**{self.key_field: key})

    def _coerce_key(self, key: Any) -> Any:
        annotation = self.model.model_fields[self.key_field].annotation
        try:
            return TypeAdapter(annotation).validate_python(key)
        except ValidationError as exc:
            raise ConstraintViolationError(
                f"Invalid {self.table} key: {key!r}",
                field=self.key_field,
                value=key,
                cause=exc,
            ) from exc

    def _require_key(self, record: T, operation: str) -> None:
        if not record.has_key():
            raise ConstraintViolationError(
                f"{operation} on '{self.table}' requires '{self.key_field}'",
                field=self.key_field,
            ).with_context(operation=operation, entity=self.table)

    # -- Operations --------------------------------------------------------

    def get(self, example: T) -> list[T]:
        """Return every row matching the assigned fields of *example*.

        An example with no assigned fields returns the whole table. Rows
        come back in primary-key order; no match is an empty list.
        """
        constraints = example.constraints()
        statement = f"SELECT {', '.join(self.model.columns())} FROM {self.table}"
        if constraints:
            where = " AND ".join(
                f"{column} = {self.session.dialect.placeholder(i)}"
                for i, column in enumerate(constraints)
            )
            statement += f" WHERE {where}"
        statement += self.session.dialect.allow_filtering(
            key_only=set(constraints) <= {self.key_field}
        )

        result = self._execute("get", statement, tuple(constraints.values()))
        records = [self.model.from_row(row) for row in result]
        records.sort(key=lambda r: r.key)
        return records

    def create(self, record: T) -> list[T]:
        """Insert *record* and return the stored row as a one-element list.

        Raises:
            ConstraintViolationError: key not assigned, or a row with the
                same key already exists.
        """
        self._require_key(record, "create")

        values = record.values()
        statement = (
            f"INSERT INTO {self.table} ({', '.join(values)}) "
            f"VALUES ({self.ph(len(values))})"
            f"{self.session.dialect.if_not_exists()}"
        )
        result = self._execute("create", statement, tuple(values.values()))
        if not result.applied:
            raise ConstraintViolationError(
                f"Duplicate {self.table} key: {record.key}",
                field=self.key_field,
                value=record.key,
            ).with_context(operation="create", entity=self.table)

        self._log.info("record_created", key=record.key)
        return self.get(self._key_example(record.key))

    def update(self, patch: T) -> list[T]:
        """Merge the assigned fields of *patch* into the stored row.

        Unassigned fields keep their stored value. Returns the merged row
        as a one-element list.

        Raises:
            ConstraintViolationError: key not assigned.
            NotFoundError: no row for the key (including a row deleted
                between the read and the write).
        """
        self._require_key(patch, "update")

        existing = self.get(self._key_example(patch.key))
        if not existing:
            raise NotFoundError(patch.key, entity=self.table).with_context(operation="update")

        changes = {k: v for k, v in patch.constraints().items() if k != self.key_field}
        if not changes:
            return existing

        dialect = self.session.dialect
        assignments = ", ".join(
            f"{column} = {dialect.placeholder(i)}" for i, column in enumerate(changes)
        )
        statement = (
            f"UPDATE {self.table} SET {assignments} "
            f"WHERE {self.key_field} = {dialect.placeholder(len(changes))}"
            f"{dialect.if_exists()}"
        )
        result = self._execute("update", statement, (*changes.values(), patch.key))
        if not result.applied:
            raise NotFoundError(patch.key, entity=self.table).with_context(operation="update")

        merged = existing[0].model_copy(update=changes)
        self._log.info("record_updated", key=patch.key, fields=sorted(changes))
        return [merged]

    def delete(self, id: Any) -> None:
        """Delete the row with key *id* (native type or its string form).

        Under :attr:`DeletePolicy.STRICT` a missing row raises
        :class:`NotFoundError`; under :attr:`DeletePolicy.IDEMPOTENT` it
        is a no-op.
        """
        key = self._coerce_key(id)
        strict = self.delete_policy == DeletePolicy.STRICT
        statement = (
            f"DELETE FROM {self.table} "
            f"WHERE {self.key_field} = {self.session.dialect.placeholder(0)}"
        )
        if strict:
            statement += self.session.dialect.if_exists()

        result = self._execute("delete", statement, (key,))
        if strict and not result.applied:
            raise NotFoundError(key, entity=self.table).with_context(operation="delete")

        self._log.info("record_deleted", key=key, applied=result.applied)


__all__ = [
    "ExampleRepository",
]
