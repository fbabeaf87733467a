"""
MySQL access helper: lazily opened, reused connections; parameterized execution;
query statistics; and a shared error stack instead of exceptions.
"""

from .db import Database, is_row_returning
from .errors import ErrorStack
from .registry import ConnectionParams, ConnectionRegistry, QueryStats, get_default_registry

__all__ = [
    "Database",
    "is_row_returning",
    "ErrorStack",
    "ConnectionParams",
    "ConnectionRegistry",
    "QueryStats",
    "get_default_registry",
]
