"""
DB connection helpers for external DataSources.

Uses psycopg (PostgreSQL), pymysql (MySQL), or trino (Trino) based on product_type.
Per-call connections are opened in autocommit mode; transaction connections are not.
"""

import logging
from typing import Any

import psycopg
import pymysql
from trino.auth import BasicAuthentication
from trino.dbapi import connect as trino_connect
from trino.transaction import IsolationLevel as TrinoIsolationLevel

from sqldataaccess.core.config import settings
from sqldataaccess.core.errors import CommandBuildError, DataSourceError
from sqldataaccess.models import (
    DEFAULT_PORTS,
    DataSource,
    IsolationLevelEnum,
    ProductTypeEnum,
)

_log = logging.getLogger(__name__)


def _get(datasource: Any, key: str) -> Any:
    """Get attribute or dict key from DataSource, dict, or Pydantic model."""
    if isinstance(datasource, dict):
        return datasource.get(key)
    return getattr(datasource, key, None)


def _resolve_product_type(
    datasource: Any, product_type: ProductTypeEnum | None
) -> ProductTypeEnum:
    pt = product_type or _get(datasource, "product_type")
    if pt is None:
        raise DataSourceError("product_type is required (from datasource or argument)")
    if isinstance(pt, str):
        try:
            return ProductTypeEnum(pt)
        except ValueError as e:
            raise DataSourceError(f"Unsupported product_type: {pt}") from e
    return pt


def resolve_datasource(source: DataSource | dict | str) -> DataSource:
    """Accept a DataSource, a dict of its fields, or a connection URL."""
    if isinstance(source, DataSource):
        return source
    if isinstance(source, str):
        return DataSource.from_url(source)
    if isinstance(source, dict):
        return DataSource(**source)
    raise DataSourceError(f"Unsupported data source: {type(source).__name__}")


def _trino_isolation(
    autocommit: bool, isolation_level: IsolationLevelEnum | None
) -> TrinoIsolationLevel:
    if autocommit:
        return TrinoIsolationLevel.AUTOCOMMIT
    if isolation_level is None:
        return TrinoIsolationLevel.READ_COMMITTED
    return TrinoIsolationLevel[isolation_level.name]


def connect(
    datasource: Any,
    *,
    autocommit: bool = True,
    isolation_level: IsolationLevelEnum | None = None,
    product_type: ProductTypeEnum | None = None,
) -> Any:
    """
    Open a connection to an external DB from DataSource or connection dict.

    - datasource: DataSource model or dict with host, port, database, username,
      password, and product_type (or pass product_type=).
    - autocommit: False for connections that will own an explicit transaction.
    - isolation_level: only Trino fixes the level at connect time; the other
      products apply it when the transaction begins (see dialect.begin).
    """
    pt = _resolve_product_type(datasource, product_type)
    host = _get(datasource, "host")
    port = _get(datasource, "port") or DEFAULT_PORTS[pt]
    database = _get(datasource, "database")
    username = _get(datasource, "username")
    password = _get(datasource, "password")

    for name, val in [
        ("host", host),
        ("database", database),
        ("username", username),
    ]:
        if val is None:
            raise DataSourceError(f"datasource must provide {name}")
    password = password if password is not None else ""

    timeout = settings.EXTERNAL_DB_CONNECT_TIMEOUT
    _log.debug("Opening %s connection to %s:%s/%s", pt.value, host, port, database)

    if pt == ProductTypeEnum.POSTGRES:
        return psycopg.connect(
            host=host,
            port=int(port),
            dbname=database,
            user=username,
            password=password,
            connect_timeout=timeout,
            autocommit=autocommit,
        )
    if pt == ProductTypeEnum.MYSQL:
        return pymysql.connect(
            host=host,
            port=int(port),
            database=database,
            user=username,
            password=password,
            connect_timeout=timeout,
            autocommit=autocommit,
        )
    if pt == ProductTypeEnum.TRINO:
        use_ssl = _get(datasource, "use_ssl") in (True, "true", "1")
        if use_ssl and not (password and password.strip()):
            raise DataSourceError("Password is required for Trino when using SSL/HTTPS.")
        return trino_connect(
            host=host,
            port=int(port),
            user=username,
            auth=BasicAuthentication(username, password) if use_ssl else None,
            catalog=database,
            schema="default",
            source="sqldataaccess",
            http_scheme="https" if use_ssl else "http",
            request_timeout=timeout,
            isolation_level=_trino_isolation(autocommit, isolation_level),
        )
    raise DataSourceError(f"Unsupported product_type: {pt}")


def close_quietly(obj: Any) -> None:
    """Close a cursor or connection, logging (not raising) a failure to close."""
    if obj is None:
        return
    try:
        obj.close()
    except Exception as e:
        _log.warning("close failed for %s: %s", type(obj).__name__, e)


def validate_timeout(timeout: int | None) -> int | None:
    """
    Normalize a command timeout in seconds.

    ``None`` and ``-1`` mean "use the server default" (falls back to
    EXTERNAL_DB_STATEMENT_TIMEOUT when configured).
    """
    if timeout is None or timeout == -1:
        return settings.EXTERNAL_DB_STATEMENT_TIMEOUT
    if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
        raise CommandBuildError(f"timeout must be a positive integer or -1, got {timeout!r}")
    return timeout


def apply_timeout(conn: Any, timeout_sec: int | None, product_type: ProductTypeEnum) -> None:
    """
    Set the session statement timeout (Postgres: statement_timeout,
    MySQL: max_execution_time, Trino: query_max_execution_time).
    """
    if timeout_sec is None or timeout_sec <= 0:
        return
    timeout_ms = int(timeout_sec * 1000)
    cur_set = conn.cursor()
    try:
        if product_type == ProductTypeEnum.POSTGRES:
            cur_set.execute("SET statement_timeout = %s" % timeout_ms)
        elif product_type == ProductTypeEnum.MYSQL:
            cur_set.execute("SET SESSION max_execution_time = %s", (timeout_ms,))
        elif product_type == ProductTypeEnum.TRINO:
            cur_set.execute(
                "SET SESSION query_max_execution_time = '%ss'" % timeout_sec
            )
    finally:
        close_quietly(cur_set)


def reset_timeout(conn: Any, product_type: ProductTypeEnum) -> None:
    """Restore the server default timeout on a connection that stays open."""
    try:
        cur_reset = conn.cursor()
        if product_type == ProductTypeEnum.POSTGRES:
            cur_reset.execute("RESET statement_timeout")
        elif product_type == ProductTypeEnum.MYSQL:
            cur_reset.execute("SET SESSION max_execution_time = DEFAULT")
        elif product_type == ProductTypeEnum.TRINO:
            cur_reset.execute("RESET SESSION query_max_execution_time")
        cur_reset.close()
    except Exception as e:
        _log.warning("statement timeout reset failed: %s", e)
