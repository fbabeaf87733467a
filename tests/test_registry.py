"""Unit tests for dbaccess.registry: keys, connection reuse, discard and close_all."""

from unittest.mock import MagicMock, patch

import pymysql
import pytest
from pymysql.cursors import DictCursor

from dbaccess import registry as registry_mod
from dbaccess.registry import (
    ConnectionParams,
    ConnectionRegistry,
    QueryStats,
    get_default_registry,
)


def _params(**overrides) -> ConnectionParams:
    values = {"host": "db1", "database": "app", "username": "u", "password": "p"}
    values.update(overrides)
    return ConnectionParams(**values)


def test_key_is_stable_for_identical_params() -> None:
    assert _params().key() == _params().key()
    assert len(_params().key()) == 32


def test_key_does_not_collide_on_concatenation() -> None:
    """('ab', 'c') and ('a', 'bc') must not share a key."""
    a = _params(host="ab", database="c")
    b = _params(host="a", database="bc")
    assert a.key() != b.key()


def test_key_changes_with_password_and_port() -> None:
    assert _params().key() != _params(password="other").key()
    assert _params().key() != _params(port=3307).key()


def test_label() -> None:
    assert _params().label() == "db1:app:u"


def test_open_uses_dict_cursor_and_autocommit(registry: ConnectionRegistry, mock_connect: MagicMock) -> None:
    registry.open(_params(port=3307, charset="latin1"))

    kwargs = mock_connect.call_args.kwargs
    assert kwargs["host"] == "db1"
    assert kwargs["port"] == 3307
    assert kwargs["user"] == "u"
    assert kwargs["password"] == "p"
    assert kwargs["database"] == "app"
    assert kwargs["charset"] == "latin1"
    assert kwargs["cursorclass"] is DictCursor
    assert kwargs["autocommit"] is True


def test_connection_reused_for_same_params(registry: ConnectionRegistry, mock_connect: MagicMock) -> None:
    c1 = registry.connection(_params())
    c2 = registry.connection(_params())
    assert c1 is c2
    assert mock_connect.call_count == 1
    assert len(registry) == 1


def test_different_params_get_different_connections(registry: ConnectionRegistry) -> None:
    with patch("dbaccess.registry.pymysql.connect", side_effect=[MagicMock(), MagicMock()]) as m:
        c1 = registry.connection(_params())
        c2 = registry.connection(_params(database="other"))
    assert c1 is not c2
    assert m.call_count == 2
    assert len(registry) == 2


def test_open_failure_propagates_and_caches_nothing(registry: ConnectionRegistry) -> None:
    err = pymysql.err.OperationalError(2003, "Can't connect to MySQL server")
    with patch("dbaccess.registry.pymysql.connect", side_effect=err):
        with pytest.raises(pymysql.err.OperationalError, match="Can't connect"):
            registry.connection(_params())
    assert len(registry) == 0
    assert registry.get(_params()) is None


def test_discard_closes_and_forgets(registry: ConnectionRegistry, mock_connect: MagicMock, fake_conn) -> None:
    registry.connection(_params())
    registry.discard(_params())
    fake_conn[0].close.assert_called_once()
    assert len(registry) == 0
    registry.discard(_params())  # unknown params: no-op


def test_close_all_swallows_already_closed(registry: ConnectionRegistry) -> None:
    good, bad = MagicMock(), MagicMock()
    bad.close.side_effect = pymysql.err.Error("Already closed")
    with patch("dbaccess.registry.pymysql.connect", side_effect=[good, bad]):
        registry.connection(_params())
        registry.connection(_params(host="db2"))
    registry.close_all()
    good.close.assert_called_once()
    bad.close.assert_called_once()
    assert len(registry) == 0


def test_query_stats_record_and_reset() -> None:
    stats = QueryStats()
    stats.record(0.25)
    stats.record(0.5)
    assert stats.total_query_count == 2
    assert stats.total_query_time == 0.75
    stats.reset()
    assert stats.total_query_count == 0
    assert stats.total_query_time == 0.0


def test_default_registry_is_shared() -> None:
    with patch.object(registry_mod, "_default_registry", None):
        r1 = get_default_registry()
        r2 = get_default_registry()
        assert r1 is r2
        assert isinstance(r1, ConnectionRegistry)


def test_discard_with_stale_connection_keeps_the_cached_one(registry: ConnectionRegistry) -> None:
    stale, live = MagicMock(), MagicMock()
    with patch("dbaccess.registry.pymysql.connect", return_value=live):
        registry.connection(_params())
    registry.discard(_params(), stale)
    assert registry.get(_params()) is live
    live.close.assert_not_called()

    registry.discard(_params(), live)
    live.close.assert_called_once()
    assert len(registry) == 0


def test_key_accepts_none_values() -> None:
    assert _params(database=None, username=None).key() == _params(database="", username="").key()


def test_close_all_then_reopen(registry: ConnectionRegistry) -> None:
    first, second = MagicMock(), MagicMock()
    with patch("dbaccess.registry.pymysql.connect", side_effect=[first, second]):
        registry.connection(_params())
        registry.close_all()
        assert registry.connection(_params()) is second
    first.close.assert_called_once()
    assert len(registry) == 1
