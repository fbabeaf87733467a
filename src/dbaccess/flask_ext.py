"""
Flask integration: each app context gets its own ConnectionRegistry and Database, so
concurrent requests never share a PyMySQL connection or an error stack. At teardown the
request's errors are logged and its connections closed.
"""
import logging

from flask import current_app, g

from dbaccess import config
from dbaccess.db import Database
from dbaccess.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


def init_app(app):
    app.teardown_appcontext(teardown_db)


def get_registry():
    if "db_registry" not in g:
        g.db_registry = ConnectionRegistry()
    return g.db_registry


def get_db():
    """Request-scoped Database built from app.config["MYSQL"] (falls back to config.MYSQL)."""
    if "db" not in g:
        settings = current_app.config.get("MYSQL") or config.MYSQL
        g.db = Database.from_config(settings, registry=get_registry())
    return g.db


def teardown_db(_exc=None):
    g.pop("db", None)
    registry = g.pop("db_registry", None)
    if registry is None:
        return
    for message in registry.errors.as_list():
        logger.error("db: %s", message)
    registry.errors.clear()
    registry.close_all()
