"""Database sessions backing the record store.

Two implementations of the :class:`~shopkeep.core.protocols.Session`
protocol:

- :class:`SQLiteSession` — stdlib ``sqlite3``; development and tests.
- :class:`CassandraSession` — ``cassandra-driver`` against Cassandra or
  YugabyteDB YCQL. Requires ``pip install shopkeep[cassandra]``.

Both translate driver exceptions into the shopkeep error taxonomy so the
store never sees a driver type:

==============================  ===============================
Driver condition                shopkeep error
==============================  ===============================
closed session / no host        ``ConnectionFailureError``
timeout / unavailable replicas  ``ConnectionFailureError``
primary-key violation           ``ConstraintViolationError``
rejected statement              ``QueryError``
==============================  ===============================
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Sequence
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from shopkeep.core.dialect import CQLDialect, SQLiteDialect
from shopkeep.core.errors import (
    ConnectionFailureError,
    ConstraintViolationError,
    QueryError,
)
from shopkeep.core.logging import get_logger
from shopkeep.core.protocols import ResultRows

if TYPE_CHECKING:
    from shopkeep.core.settings import StoreSettings

log = get_logger(__name__)

# OperationalError messages that mean the database itself is unusable.
_SQLITE_UNAVAILABLE = ("locked", "unable to open", "disk i/o", "readonly database")


class SQLiteSession:
    """
    SQLite-backed session.

    One connection shared by all callers (``check_same_thread=False``),
    serialized by a lock. Each statement commits on success and rolls
    back on failure.

    Parameters:
        path: Database path or ``:memory:``.
        timeout: Seconds to wait on a locked database.
    """

    def __init__(self, path: str = ":memory:", *, timeout: float = 5.0) -> None:
        self.path = path
        self._dialect = SQLiteDialect()
        self._lock = threading.Lock()
        self._closed = False

        try:
            self._conn = sqlite3.connect(
                path,
                timeout=timeout,
                check_same_thread=False,
                uri=path.startswith("file:"),
            )
        except sqlite3.Error as e:
            raise ConnectionFailureError(f"Failed to open SQLite database {path!r}: {e}", cause=e) from e
        self._conn.row_factory = sqlite3.Row

    @property
    def dialect(self) -> SQLiteDialect:
        return self._dialect

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, statement: str, params: Sequence[Any] = ()) -> ResultRows:
        with self._lock:
            if self._closed:
                raise ConnectionFailureError("SQLite session is closed")
            try:
                cursor = self._conn.execute(statement, tuple(params))
                rows = [dict(row) for row in cursor.fetchall()]
                # rowcount is -1 for SELECT and the number of touched rows for DML
                applied = cursor.rowcount != 0
                self._conn.commit()
            except sqlite3.IntegrityError as e:
                self._conn.rollback()
                raise ConstraintViolationError(str(e), cause=e) from e
            except sqlite3.ProgrammingError as e:
                # "Cannot operate on a closed database."
                raise ConnectionFailureError(f"SQLite connection unusable: {e}", cause=e) from e
            except sqlite3.OperationalError as e:
                self._conn.rollback()
                if any(marker in str(e).lower() for marker in _SQLITE_UNAVAILABLE):
                    raise ConnectionFailureError(f"SQLite unavailable: {e}", cause=e) from e
                raise QueryError(str(e), cause=e) from e
            except sqlite3.Error as e:
                raise QueryError(str(e), cause=e) from e
        return ResultRows(rows=rows, applied=applied)

    def close(self) -> None:
        with self._lock:
            if not self._closed:
                self._conn.close()
                self._closed = True

    def __repr__(self) -> str:
        return f"SQLiteSession(path={self.path!r}, closed={self._closed})"


@lru_cache(maxsize=1)
def _cassandra_errors() -> tuple[tuple[type[BaseException], ...], tuple[type[BaseException], ...]]:
    """(connectivity errors, statement errors) from cassandra-driver."""
    from cassandra import (
        DriverException,
        OperationTimedOut,
        RequestValidationException,
        Timeout,
        Unavailable,
    )
    from cassandra.cluster import NoHostAvailable

    connectivity = (NoHostAvailable, OperationTimedOut, Timeout, Unavailable)
    statement = (RequestValidationException, DriverException)
    return connectivity, statement


class CassandraSession:
    """
    Session over a ``cassandra-driver`` session (Cassandra / YCQL).

    Rows are returned as dicts (``dict_factory``). For lightweight
    transactions the ``[applied]`` column becomes :attr:`ResultRows.applied`
    and the returned rows are dropped.

    Example::

        session = CassandraSession.connect(StoreSettings(backend="cassandra"))
        store = ShopStore(session)
    """

    def __init__(self, session: Any, *, cluster: Any = None) -> None:
        from cassandra.query import dict_factory

        self._session = session
        self._cluster = cluster
        self._dialect = CQLDialect()
        self._session.row_factory = dict_factory

    @classmethod
    def connect(cls, settings: StoreSettings) -> CassandraSession:
        """Open a cluster connection bound to ``settings.keyspace``."""
        try:
            from cassandra.auth import PlainTextAuthProvider
            from cassandra.cluster import Cluster
        except ImportError as e:
            raise ImportError(
                "cassandra-driver package required for CassandraSession. "
                "Install with: pip install shopkeep[cassandra]"
            ) from e

        auth = None
        if settings.username:
            auth = PlainTextAuthProvider(username=settings.username, password=settings.password or "")

        cluster = Cluster(
            settings.host_list,
            port=settings.port,
            auth_provider=auth,
            connect_timeout=settings.connect_timeout_s,
        )
        connectivity, statement = _cassandra_errors()
        try:
            session = cluster.connect(settings.keyspace)
        except (*connectivity, *statement) as e:
            cluster.shutdown()
            raise ConnectionFailureError(
                f"Failed to connect to {settings.hosts}:{settings.port}/{settings.keyspace}: {e}",
                cause=e,
            ) from e

        log.info("cassandra_connected", hosts=settings.hosts, keyspace=settings.keyspace)
        return cls(session, cluster=cluster)

    @property
    def dialect(self) -> CQLDialect:
        return self._dialect

    @property
    def closed(self) -> bool:
        return bool(self._session.is_shutdown)

    def execute(self, statement: str, params: Sequence[Any] = ()) -> ResultRows:
        if self.closed:
            raise ConnectionFailureError("Cassandra session is shut down")

        connectivity, rejected = _cassandra_errors()
        try:
            result = self._session.execute(statement, tuple(params) or None)
        except connectivity as e:
            raise ConnectionFailureError(f"Cassandra unavailable: {e}", cause=e) from e
        except rejected as e:
            raise QueryError(str(e), cause=e) from e

        rows = [dict(row) for row in result] if result is not None else []
        if rows and "[applied]" in rows[0]:
            return ResultRows(rows=[], applied=bool(rows[0]["[applied]"]))
        return ResultRows(rows=rows)

    def close(self) -> None:
        self._session.shutdown()
        if self._cluster is not None:
            self._cluster.shutdown()


__all__ = [
    "SQLiteSession",
    "CassandraSession",
]
