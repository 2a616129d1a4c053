"""
DB connections for external DataSources.

No pooling layer: psycopg, pymysql and trino are used directly; each call
opens its own connection unless a transaction owns one.
"""

from .connect import (
    apply_timeout,
    close_quietly,
    connect,
    reset_timeout,
    resolve_datasource,
    validate_timeout,
)
from .dialect import Dialect, get_dialect

__all__ = [
    "connect",
    "close_quietly",
    "resolve_datasource",
    "validate_timeout",
    "apply_timeout",
    "reset_timeout",
    "Dialect",
    "get_dialect",
]
