"""Shared fixtures: PyMySQL connections are replaced with MagicMocks so no server is needed."""

from unittest.mock import MagicMock, patch

import pytest

from dbaccess.registry import ConnectionRegistry


def make_conn(
    rows: list | None = None,
    rowcount: int = 0,
    lastrowid: int | None = None,
) -> tuple[MagicMock, MagicMock]:
    """Return (conn, cursor); conn.cursor() works as a context manager yielding cursor."""
    cur = MagicMock()
    cur.fetchall.return_value = rows if rows is not None else []
    cur.rowcount = rowcount
    cur.lastrowid = lastrowid
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = cur
    return conn, cur


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def fake_conn() -> tuple[MagicMock, MagicMock]:
    return make_conn()


@pytest.fixture
def mock_connect(fake_conn: tuple[MagicMock, MagicMock]):
    """Patch pymysql.connect to hand out the fake connection."""
    with patch("dbaccess.registry.pymysql.connect", return_value=fake_conn[0]) as m:
        yield m
