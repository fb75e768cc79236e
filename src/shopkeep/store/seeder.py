"""CSV fixture loader for record tables.

Reads ``<directory>/<table>.csv`` (header row = column names), validates
each row through the record model and replaces the table's contents.
Used by tests and local development to put a table into a known state.

Example::

    seeder = Seeder(session, "tests/fixtures")
    seeder.refresh(Shop)        # truncates 'shop' and loads shop.csv
"""

from __future__ import annotations

import csv
from pathlib import Path

from pydantic import ValidationError

from shopkeep.core.errors import ConfigError, ConstraintViolationError
from shopkeep.core.logging import get_logger
from shopkeep.core.protocols import Session
from shopkeep.store.models import Record

log = get_logger(__name__)


class Seeder:
    """Refresh tables from CSV fixtures."""

    def __init__(self, session: Session, directory: str | Path, *, encoding: str = "utf-8") -> None:
        self.session = session
        self.directory = Path(directory)
        self._encoding = encoding

    def fixture_path(self, model: type[Record]) -> Path:
        return self.directory / f"{model.table_name}.csv"

    def read(self, model: type[Record]) -> list[Record]:
        """Parse the fixture for *model* into validated records."""
        path = self.fixture_path(model)
        if not path.exists():
            raise ConfigError(f"Fixture not found: {path}")

        records = []
        with open(path, "r", encoding=self._encoding, newline="") as f:
            for line, row in enumerate(csv.DictReader(f), start=2):
                try:
                    records.append(model.model_validate(row))
                except ValidationError as e:
                    raise ConstraintViolationError(
                        f"{path.name}:{line}: invalid row: {e.error_count()} error(s)",
                        cause=e,
                    ) from e
        return records

    def refresh(self, model: type[Record]) -> int:
        """Replace every row of the model's table with the fixture rows.

        Returns the number of rows loaded.
        """
        records = self.read(model)
        dialect = self.session.dialect
        table = model.table_name
        columns = model.columns()
        statement = (
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({dialect.placeholders(len(columns))})"
        )

        self.session.execute(dialect.truncate_statement(table))
        for record in records:
            self.session.execute(statement, tuple(record.values().values()))

        log.info("table_seeded", table=table, rows=len(records), fixture=str(self.fixture_path(model)))
        return len(records)


__all__ = ["Seeder"]
