"""
Database facade over PyMySQL. Connections are opened lazily and shared through a
ConnectionRegistry; errors never propagate: calls return False and record the cause on
the registry's error stack.
"""
import logging
import re
import time

import pymysql

from dbaccess import config
from dbaccess.errors import format_driver_error
from dbaccess.registry import ConnectionParams, get_default_registry

logger = logging.getLogger(__name__)

# Statements whose main keyword is one of these return rows
ROW_RETURNING = ("SELECT", "SHOW", "DESCRIBE", "DESC", "EXPLAIN", "TABLE", "VALUES")

# Keywords that can follow a WITH clause
_CTE_BODY = ("SELECT", "UPDATE", "DELETE", "INSERT", "REPLACE", "TABLE", "VALUES")

# Client-side "server has gone away" / "lost connection" codes
_LOST_CONNECTION_CODES = (2006, 2013)

# Parameter interpolation in PyMySQL raises these when params don't match the placeholders
_BIND_ERRORS = (TypeError, ValueError, KeyError)

_FIRST_WORD = re.compile(r"[A-Za-z]+")
_TOKEN = re.compile(r"'(?:[^'\\]|\\.)*'|\"(?:[^\"\\]|\\.)*\"|`[^`]*`|[()]|[A-Za-z_]+")


def statement_keyword(sql):
    """Main keyword of a statement, upper-cased: leading parentheses and WITH clauses are skipped."""
    s = sql.lstrip().lstrip("(").lstrip()
    match = _FIRST_WORD.match(s)
    if not match:
        return ""
    word = match.group(0).upper()
    if word != "WITH":
        return word
    depth = 0
    for token in _TOKEN.finditer(s, match.end()):
        text = token.group(0)
        if text == "(":
            depth += 1
        elif text == ")":
            depth -= 1
        elif depth == 0 and text.upper() in _CTE_BODY:
            return text.upper()
    return "SELECT"


def is_row_returning(sql):
    """True if the statement returns rows (case-insensitive, CTEs resolved to their body)."""
    return statement_keyword(sql) in ROW_RETURNING


class Database:
    def __init__(self, host, dbname, username, password, *, port=None, charset=None, registry=None):
        self.params = ConnectionParams(
            host=host or "",
            database=dbname or "",
            username=username or "",
            password=password or "",
            port=int(port) if port else config.MYSQL["port"],
            charset=charset or config.ENC_CHARSET,
        )
        self.registry = registry if registry is not None else get_default_registry()
        self.error_prefix = f"DB Error ({self.params.label()})"
        self._row_count = None
        self._affected_rows = None
        self._last_insert_id = None

    @classmethod
    def from_config(cls, settings=None, registry=None):
        """Build from a MYSQL-style dict (host, port, user, password, database); defaults to config.MYSQL."""
        s = settings or config.MYSQL
        return cls(
            s.get("host"),
            s.get("database"),
            s.get("user"),
            s.get("password"),
            port=s.get("port"),
            charset=s.get("charset"),
            registry=registry,
        )

    def connect(self):
        """Reuse the registry's connection for these parameters, or open one. Returns True/False."""
        return self._connection() is not None

    def ensure_connection(self):
        return self.connect()

    def ping(self):
        """Check the connection is alive, reconnecting in place if the server dropped it."""
        conn = self._connection()
        if conn is None:
            return False
        try:
            conn.ping(reconnect=True)
        except pymysql.err.MySQLError as e:
            self._add_error("Database.ping() exception: " + format_driver_error(e))
            return False
        return True

    def close(self):
        """Close the shared connection for these parameters; the next call on any facade reopens it."""
        self.registry.discard(self.params)

    def execute_sql(self, sql, params=None):
        """
        Execute one statement with bound params (%s or %(name)s placeholders).

        Returns list of dicts for row-returning statements, True for anything else,
        False on failure (check with `is False`: an empty result set is also falsy).
        """
        conn = self._connection()
        if conn is None:
            return False

        sql = sql.lstrip()
        args = params if params else None

        try:
            with conn.cursor() as cur:
                start = time.perf_counter()
                cur.execute(sql, args)
                duration = time.perf_counter() - start

                self.registry.stats.record(duration)
                self._log_timing(sql, duration)

                if is_row_returning(sql):
                    rows = list(cur.fetchall())
                    self._row_count = len(rows)
                    return rows

                self._affected_rows = cur.rowcount
                self._last_insert_id = cur.lastrowid
                return True
        except pymysql.err.MySQLError as e:
            self._forget_if_lost(conn, e)
            self._add_error(
                "Database.execute_sql() exception: " + format_driver_error(e) + f" [SQL query:] {sql}"
            )
            return False
        except _BIND_ERRORS as e:
            self._add_error(
                "Database.execute_sql() parameter binding failed: "
                + format_driver_error(e)
                + f" [SQL query:] {sql}"
            )
            return False

    def begin(self):
        return self._transaction_call("begin")

    def commit(self):
        return self._transaction_call("commit")

    def rollback(self):
        return self._transaction_call("rollback")

    def _transaction_call(self, name):
        conn = self._connection()
        if conn is None:
            return False
        try:
            getattr(conn, name)()
        except pymysql.err.MySQLError as e:
            self._forget_if_lost(conn, e)
            self._add_error(f"Database.{name}() exception: " + format_driver_error(e))
            return False
        return True

    def get_row_count(self):
        return self._row_count

    def get_affected_rows(self):
        return self._affected_rows

    def get_last_insert_id(self):
        return self._last_insert_id

    def get_error_stack(self):
        """All errors recorded by facades sharing this registry, oldest first."""
        return self.registry.errors.as_list()

    def get_last_error(self):
        return self.registry.errors.last()

    def clear_errors(self):
        self.registry.errors.clear()

    def get_total_query_count(self):
        return self.registry.stats.total_query_count

    def get_total_query_time(self):
        return self.registry.stats.total_query_time

    def _connection(self):
        try:
            return self.registry.connection(self.params)
        except pymysql.err.MySQLError as e:
            self._add_error("Database.connect() exception: " + format_driver_error(e))
            return None

    def _add_error(self, message):
        self.registry.errors.push(self.error_prefix, message)

    def _forget_if_lost(self, conn, exc):
        lost = isinstance(exc, pymysql.err.InterfaceError) or (
            isinstance(exc, pymysql.err.OperationalError)
            and exc.args
            and exc.args[0] in _LOST_CONNECTION_CODES
        )
        if lost:
            # Only evicts conn itself; a replacement opened by another facade stays cached
            self.registry.discard(self.params, conn)

    def _log_timing(self, sql, duration):
        if config.SLOW_QUERY_SECONDS > 0 and duration > config.SLOW_QUERY_SECONDS:
            logger.warning("db: slow query (%.3fs): %s", duration, sql)
        else:
            logger.debug("db: %.3fs %s", duration, sql)
