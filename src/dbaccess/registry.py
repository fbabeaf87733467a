"""
MySQL connection registry. Uses PyMySQL; one live connection per distinct set of
connection parameters, reused by every Database built with the same parameters.
Not thread-safe: intended for one request per process.
"""
import hashlib
import logging
from dataclasses import dataclass

import pymysql
from pymysql.cursors import DictCursor

from dbaccess import config
from dbaccess.errors import ErrorStack

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionParams:
    host: str
    database: str
    username: str
    password: str
    port: int = 3306
    charset: str = "utf8mb4"

    def key(self):
        """MD5 of the parameters, NUL-separated so ('ab', 'c') and ('a', 'bc') differ."""
        parts = [self.host, self.database, self.username, self.password, self.port, self.charset]
        raw = "\0".join("" if p is None else str(p) for p in parts)
        return hashlib.md5(raw.encode("utf-8")).hexdigest()

    def label(self):
        return f"{self.host}:{self.database}:{self.username}"


class QueryStats:
    """Query count and cumulative wall-clock time (seconds) of successful executions."""

    def __init__(self):
        self.total_query_count = 0
        self.total_query_time = 0.0

    def record(self, duration):
        self.total_query_count += 1
        self.total_query_time += duration

    def reset(self):
        self.total_query_count = 0
        self.total_query_time = 0.0


class ConnectionRegistry:
    """Connections keyed by ConnectionParams.key(), plus the stats and error stack they share."""

    def __init__(self):
        self._connections = {}
        self.stats = QueryStats()
        self.errors = ErrorStack()

    def get(self, params):
        return self._connections.get(params.key())

    def open(self, params):
        """Open a new connection and cache it. Driver exceptions propagate to the caller."""
        conn = pymysql.connect(
            host=params.host,
            port=int(params.port),
            user=params.username,
            password=params.password,
            database=params.database or None,
            charset=params.charset,
            connect_timeout=config.CONNECT_TIMEOUT,
            cursorclass=DictCursor,
            autocommit=True,
        )
        self._connections[params.key()] = conn
        logger.debug("db: opened connection to %s", params.label())
        return conn

    def connection(self, params):
        conn = self.get(params)
        if conn is not None:
            logger.debug("db: reusing connection to %s", params.label())
            return conn
        return self.open(params)

    def discard(self, params, conn=None):
        """Close and forget the cached connection; with conn given, only if it is still the cached one."""
        key = params.key()
        cached = self._connections.get(key)
        if cached is None or (conn is not None and cached is not conn):
            return
        del self._connections[key]
        _close_quiet(cached)

    def close_all(self):
        conns = list(self._connections.values())
        self._connections.clear()
        for conn in conns:
            _close_quiet(conn)

    def __len__(self):
        return len(self._connections)


def _close_quiet(conn):
    try:
        conn.close()
    except pymysql.err.Error as e:
        logger.debug("db: close failed: %s", e)


_default_registry = None


def get_default_registry():
    """Process-wide registry used by Database instances that are not given one."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ConnectionRegistry()
    return _default_registry
