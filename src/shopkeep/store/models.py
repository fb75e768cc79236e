"""Record models for the example store.

A record is a pydantic model bound to one table. Which fields a caller
actually assigned is tracked by pydantic itself (``model_fields_set``), so
"unset" and "explicitly empty" are never confused:

    >>> Shop(name="Pramod").constraints()
    {'name': 'Pramod'}
    >>> Shop().constraints()
    {}
    >>> Shop(name="").constraints()
    {'name': ''}
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, ValidationError

from shopkeep.core.errors import StoreError


class Record(BaseModel):
    """Base class for rows of a single table keyed by one column."""

    model_config = ConfigDict(extra="ignore")

    table_name: ClassVar[str]
    key_field: ClassVar[str] = "id"

    @classmethod
    def columns(cls) -> list[str]:
        """Column names in declaration order."""
        return list(cls.model_fields)

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        """Build a record from a result row.

        NULL columns are left unset so the field default applies.

        Raises:
            StoreError: a column value does not fit its field.
        """
        try:
            return cls.model_validate({k: v for k, v in row.items() if v is not None})
        except ValidationError as e:
            raise StoreError(f"Malformed {cls.table_name} row: {e.errors()[0]['msg']}", cause=e).with_context(
                entity=cls.table_name
            )

    @property
    def key(self) -> Any:
        return getattr(self, self.key_field)

    def has_key(self) -> bool:
        """True when the key field was explicitly assigned."""
        return self.key_field in self.model_fields_set

    def constraints(self) -> dict[str, Any]:
        """Assigned fields, in column order."""
        return {
            name: getattr(self, name)
            for name in self.columns()
            if name in self.model_fields_set
        }

    def values(self) -> dict[str, Any]:
        """All fields, in column order."""
        return {name: getattr(self, name) for name in self.columns()}


class Shop(Record):
    """A shop row: ``shop (id int PRIMARY KEY, name, location, state)``."""

    table_name: ClassVar[str] = "shop"

    id: int = 0
    name: str = ""
    location: str = ""
    state: str = ""


__all__ = [
    "Record",
    "Shop",
]
