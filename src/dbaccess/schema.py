"""
Schema helpers: create, drop, and reset tables, and load a .sql schema file.
All helpers go through Database.execute_sql, so failures return False and land on the error stack.
"""
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_$]*(\.[A-Za-z_][A-Za-z0-9_$]*)?$")


def quote_table(table):
    """Backtick-quote a table name (optionally schema.table). Raises ValueError on anything else."""
    if not table or not _TABLE_NAME.match(table):
        raise ValueError(f"Invalid table name: {table!r}")
    return ".".join(f"`{part}`" for part in table.split("."))


TABLE_EXISTS_SQL = (
    "SELECT 1 FROM information_schema.tables"
    " WHERE table_schema = COALESCE(%s, DATABASE()) AND table_name = %s LIMIT 1"
)


def table_exists(db, table):
    """Exact-name lookup; a failed lookup counts as missing and stays on the error stack."""
    schema_name, _, name = table.rpartition(".")
    return bool(db.execute_sql(TABLE_EXISTS_SQL, (schema_name or None, name)))


def create_table(db, table, columns):
    """CREATE TABLE IF NOT EXISTS from a list of column/constraint definitions."""
    columns = [c.strip() for c in columns if c and c.strip()]
    if not columns:
        raise ValueError(f"No column definitions for table {table!r}")
    sql = f"CREATE TABLE IF NOT EXISTS {quote_table(table)} (" + ", ".join(columns) + ")"
    return db.execute_sql(sql)


def drop_table(db, table):
    return db.execute_sql(f"DROP TABLE IF EXISTS {quote_table(table)}")


def reset_table(db, table, columns):
    """
    Empty, drop, and recreate a table. Rows are deleted first so the drop does not trip
    over constraints on a non-empty table. A missing table is not an error.
    """
    quoted = quote_table(table)
    if table_exists(db, table):
        if db.execute_sql(f"DELETE FROM {quoted}") is False:
            return False
    if drop_table(db, table) is False:
        return False
    return create_table(db, table, columns)


def split_script(sql):
    """Split a schema script into statements on ';'."""
    # Drop full-line comments so semicolons in "-- text; more" don't split incorrectly
    lines = [line for line in sql.splitlines() if not line.strip().startswith("--")]
    sql_clean = "\n".join(lines)
    return [s.strip() for s in sql_clean.split(";") if s.strip()]


def run_script(db, sql):
    """Execute each statement of a script in order; stop and return False at the first failure."""
    statements = split_script(sql)
    for i, stmt in enumerate(statements, start=1):
        if db.execute_sql(stmt) is False:
            logger.error("schema: statement %d of %d failed", i, len(statements))
            return False
    logger.info("schema: executed %d statements", len(statements))
    return True


def load_script(db, path):
    """Run a UTF-8 .sql file. A missing file raises FileNotFoundError; it is not a database error."""
    path = Path(path)
    return run_script(db, path.read_text(encoding="utf-8"))
