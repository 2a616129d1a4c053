"""
TransactionContext: one explicit transaction and the connection it owns.

Idle -> Active on begin(); commit() and rollback() always end Idle with the
connection closed. Commit/rollback while Idle are no-ops.
"""

import logging
from typing import Any, Callable

from sqldataaccess.core.connection import close_quietly, connect
from sqldataaccess.core.connection.dialect import Dialect
from sqldataaccess.core.errors import TransactionStateError
from sqldataaccess.models import DataSource, IsolationLevelEnum

_log = logging.getLogger(__name__)


class TransactionContext:
    """
    Owns the transaction connection for an engine instance.

    on_end runs whenever an active transaction ends (commit or rollback);
    the engine uses it to clear its pending parameters.
    """

    def __init__(
        self,
        datasource: DataSource,
        dialect: Dialect,
        *,
        on_end: Callable[[], None] | None = None,
    ) -> None:
        self._datasource = datasource
        self._dialect = dialect
        self._on_end = on_end
        self.connection: Any = None
        self.name = ""
        self.isolation_level: IsolationLevelEnum | None = None
        self.active = False

    def begin(self, name: str, isolation_level: IsolationLevelEnum | None = None) -> None:
        if self.active:
            raise TransactionStateError(
                f"Transaction {self.name!r} is already active; commit or roll it back first"
            )
        try:
            self.connection = connect(
                self._datasource, autocommit=False, isolation_level=isolation_level
            )
            self.name = name
            self.isolation_level = isolation_level
            self._dialect.begin(self.connection, isolation_level)
            self.active = True
            _log.info("Began transaction %r (isolation=%s)", name, isolation_level)
        except Exception:
            if self.active:
                self.rollback()
            else:
                close_quietly(self.connection)
                self.connection = None
                self.name = ""
                self.isolation_level = None
            raise

    def commit(self) -> None:
        try:
            if self.active:
                self.connection.commit()
                _log.info("Committed transaction %r", self.name)
        except Exception as e:
            if self.active:
                _log.warning("Commit of %r failed, rolling back: %s", self.name, e)
                self.rollback()
            raise
        finally:
            self._end()

    def rollback(self) -> None:
        try:
            if self.active:
                self.connection.rollback()
                _log.info("Rolled back transaction %r", self.name)
        finally:
            self._end()

    def _end(self) -> None:
        if not self.active:
            return
        self.active = False
        self.name = ""
        self.isolation_level = None
        try:
            if self._on_end is not None:
                self._on_end()
        finally:
            close_quietly(self.connection)
            self.connection = None
