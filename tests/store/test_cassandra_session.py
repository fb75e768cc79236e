"""Tests for CassandraSession against a mocked driver session."""

from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("cassandra")

from cassandra import InvalidRequest  # noqa: E402
from cassandra.cluster import NoHostAvailable  # noqa: E402
from cassandra.query import dict_factory  # noqa: E402

from shopkeep.core.dialect import CQLDialect  # noqa: E402
from shopkeep.core.errors import ConnectionFailureError, QueryError  # noqa: E402
from shopkeep.core.settings import StoreSettings  # noqa: E402
from shopkeep.store.sessions import CassandraSession  # noqa: E402
from shopkeep.store.models import Shop  # noqa: E402
from shopkeep.store.shop import ShopStore  # noqa: E402


def _session(rows=None, error=None):
    driver = MagicMock()
    driver.is_shutdown = False
    if error is not None:
        driver.execute.side_effect = error
    else:
        driver.execute.return_value = rows or []
    return driver, CassandraSession(driver)


class TestExecute:
    def test_dialect_and_row_factory(self):
        driver, session = _session()
        assert isinstance(session.dialect, CQLDialect)
        assert driver.row_factory is dict_factory

    def test_rows(self):
        driver, session = _session(rows=[{"id": 1, "name": "Pramod"}])
        result = session.execute("SELECT id, name FROM shop WHERE id = %s", (1,))
        assert result.rows == [{"id": 1, "name": "Pramod"}]
        driver.execute.assert_called_once_with("SELECT id, name FROM shop WHERE id = %s", (1,))

    def test_no_params_passes_none(self):
        driver, session = _session()
        session.execute("SELECT id FROM shop")
        driver.execute.assert_called_once_with("SELECT id FROM shop", None)

    def test_applied_column(self):
        _, session = _session(rows=[{"[applied]": False, "id": 1}])
        result = session.execute("INSERT INTO shop (id) VALUES (%s) IF NOT EXISTS", (1,))
        assert result.applied is False
        assert result.rows == []

    def test_no_host_available(self):
        _, session = _session(error=NoHostAvailable("down", {}))
        with pytest.raises(ConnectionFailureError):
            session.execute("SELECT id FROM shop")

    def test_invalid_request(self):
        _, session = _session(error=InvalidRequest("unconfigured table"))
        with pytest.raises(QueryError):
            session.execute("SELECT id FROM nope")

    def test_shut_down_session(self):
        driver, session = _session()
        driver.is_shutdown = True
        assert session.closed
        with pytest.raises(ConnectionFailureError):
            session.execute("SELECT id FROM shop")


class TestLifecycle:
    def test_close_shuts_down_cluster(self):
        driver = MagicMock()
        cluster = MagicMock()
        CassandraSession(driver, cluster=cluster).close()
        driver.shutdown.assert_called_once()
        cluster.shutdown.assert_called_once()

    def test_connect_uses_settings(self):
        settings = StoreSettings(
            backend="cassandra", hosts="a, b", port=9043, keyspace="shops", username="u", password="p"
        )
        with patch("cassandra.cluster.Cluster") as cluster_cls:
            session = CassandraSession.connect(settings)

        args, kwargs = cluster_cls.call_args
        assert args == (["a", "b"],)
        assert kwargs["port"] == 9043
        assert kwargs["auth_provider"].username == "u"
        cluster_cls.return_value.connect.assert_called_once_with("shops")
        assert isinstance(session, CassandraSession)

    def test_connect_failure(self):
        settings = StoreSettings(backend="cassandra")
        with patch("cassandra.cluster.Cluster") as cluster_cls:
            cluster_cls.return_value.connect.side_effect = NoHostAvailable("down", {})
            with pytest.raises(ConnectionFailureError):
                CassandraSession.connect(settings)
        cluster_cls.return_value.shutdown.assert_called_once()


class TestNullColumns:
    def test_get_row_with_null_columns(self):
        _, session = _session(rows=[{"id": 5, "name": None, "location": "Gaya", "state": None}])
        assert ShopStore(session).get(Shop(id=5)) == [Shop(id=5, location="Gaya")]
