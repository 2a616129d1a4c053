"""
SqlDataAccess: statements, stored procedures and explicit transactions.

Every operation follows the same lifecycle: build the command, execute,
post-process, release the cursor (and the connection when the call opened
it), then clear the pending parameters. A failure while a transaction is
active rolls that transaction back before the original exception reaches
the caller; nothing is retried.

An instance is not thread-safe. The pending parameters and the transaction
are plain instance state, so one instance must only be used from one thread
at a time.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, NamedTuple

from sqldataaccess.core.config import settings
from sqldataaccess.core.connection import get_dialect, resolve_datasource
from sqldataaccess.core.errors import UnsupportedOperationError
from sqldataaccess.core.parameters import (
    UNSET,
    Parameter,
    ParameterDirection,
    ParameterSet,
)
from sqldataaccess.core.result import DataSet, DataTable, materialize_set, materialize_table
from sqldataaccess.engines.command import Command, CommandBuilder
from sqldataaccess.engines.transaction import TransactionContext
from sqldataaccess.models import DataSource, IsolationLevelEnum

_log = logging.getLogger(__name__)


class InsertResult(NamedTuple):
    rowcount: int
    id: int | None


class ProcedureResult(NamedTuple):
    """Result of a procedure call that reports errors through output parameters."""

    value: Any
    return_code: int | None
    return_message: str


def _rowcount(cursor: Any) -> int:
    return cursor.rowcount if cursor.rowcount is not None else 0


def _output_value(parm: Parameter) -> Any:
    return None if parm.value is UNSET else parm.value


class SqlDataAccess:
    """
    Execute SQL statements and stored procedures against one data source.

    source: DataSource, dict of DataSource fields, or a connection URL
    (``postgresql://user:pw@host:5432/db``).
    """

    def __init__(
        self,
        source: DataSource | dict | str,
        *,
        return_code_parameter: str | None = None,
        return_message_parameter: str | None = None,
    ) -> None:
        self._datasource = resolve_datasource(source)
        self._dialect = get_dialect(self._datasource.product_type)
        self._parameters = ParameterSet()
        self._builder = CommandBuilder(self._datasource, self._dialect)
        self._transaction = TransactionContext(
            self._datasource, self._dialect, on_end=self._parameters.clear
        )
        self._return_code_parameter = (
            return_code_parameter or settings.PROCEDURE_RETURN_CODE_PARAMETER
        )
        self._return_message_parameter = (
            return_message_parameter or settings.PROCEDURE_RETURN_MESSAGE_PARAMETER
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def datasource(self) -> DataSource:
        return self._datasource

    @property
    def parameters(self) -> ParameterSet:
        """Parameters pending for the next statement."""
        return self._parameters

    @property
    def transaction(self) -> TransactionContext:
        return self._transaction

    @property
    def in_transaction(self) -> bool:
        return self._transaction.active

    def add_parameter(
        self,
        name: str,
        value: Any = UNSET,
        direction: ParameterDirection = ParameterDirection.INPUT,
    ) -> Parameter:
        """Declare a parameter for the next statement execution."""
        return self._parameters.add(name, value, direction)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin_transaction(
        self, name: str = "", isolation_level: IsolationLevelEnum | None = None
    ) -> None:
        """Open a connection and start a transaction on it. Rejected while one is active."""
        self._transaction.begin(name, isolation_level)

    def commit_transaction(self) -> None:
        """Commit; a failed commit is rolled back and re-raised. No-op when idle."""
        self._transaction.commit()

    def rollback_transaction(self) -> None:
        """Roll the whole transaction back. No-op when idle."""
        self._transaction.rollback()

    @contextmanager
    def transaction_scope(
        self, name: str = "", isolation_level: IsolationLevelEnum | None = None
    ) -> Iterator[TransactionContext]:
        """Commit on normal exit, roll back and re-raise on an exception."""
        self.begin_transaction(name, isolation_level)
        try:
            yield self._transaction
        except Exception:
            self.rollback_transaction()
            raise
        else:
            self.commit_transaction()

    def close(self) -> None:
        """
        Roll back any open transaction, close its connection and drop pending
        parameters. Safe to call repeatedly; the engine stays usable.
        """
        try:
            if self._transaction.active:
                _log.warning("Closing with transaction %r still active, rolling back", self._transaction.name)
                self._transaction.rollback()
        finally:
            self._parameters.clear()

    def __enter__(self) -> "SqlDataAccess":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Call lifecycle
    # ------------------------------------------------------------------

    @contextmanager
    def _guard(self, command: Command) -> Iterator[Command]:
        try:
            yield command
        except Exception as e:
            if self._transaction.active:
                _log.warning(
                    "%s failed inside transaction %r, rolling back: %s",
                    command.text, self._transaction.name, e,
                )
                self._transaction.rollback()
            raise
        finally:
            command.release(keep_connection_settings=self._transaction.active)

    @contextmanager
    def _statement(
        self, sql: str, timeout: int | None, parameters: ParameterSet | None
    ) -> Iterator[Command]:
        parms = self._parameters if parameters is None else parameters
        try:
            command = self._builder.build_statement(
                sql, timeout, parms, transaction=self._transaction
            )
            with self._guard(command):
                yield command
        finally:
            self._parameters.clear()

    @contextmanager
    def _procedure(
        self, proc_name: str, timeout: int | None, args: tuple[Any, ...]
    ) -> Iterator[Command]:
        try:
            command = self._builder.build_procedure(
                proc_name, timeout, args, transaction=self._transaction
            )
            with self._guard(command):
                yield command
        finally:
            self._parameters.clear()

    def _error_parms(self, command: Command) -> tuple[int | None, str]:
        code = _output_value(command.parameter(self._return_code_parameter))
        message = _output_value(command.parameter(self._return_message_parameter))
        return (
            int(code) if code is not None else None,
            str(message) if message is not None else "",
        )

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def execute_data_table(
        self, sql: str, timeout: int | None = -1, *, parameters: ParameterSet | None = None
    ) -> DataTable:
        """Run a SELECT and return its rows as a DataTable."""
        with self._statement(sql, timeout, parameters) as cmd:
            return materialize_table(cmd.execute())

    def execute_data_set(
        self, sql: str, timeout: int | None = -1, *, parameters: ParameterSet | None = None
    ) -> DataSet:
        """Run SQL and return every result set it produces."""
        with self._statement(sql, timeout, parameters) as cmd:
            return materialize_set(cmd.execute())

    def execute_non_query(
        self, sql: str, timeout: int | None = -1, *, parameters: ParameterSet | None = None
    ) -> int:
        """Run a non-SELECT statement and return the number of rows affected."""
        with self._statement(sql, timeout, parameters) as cmd:
            return _rowcount(cmd.execute())

    def execute_insert_get_id(
        self, sql: str, timeout: int | None = -1, *, parameters: ParameterSet | None = None
    ) -> InsertResult:
        """
        Run an INSERT, then read the identity generated on the same connection.

        The identity is connection-scoped, not table-scoped: inserts made by
        triggers on the same connection can change the value returned.
        """
        with self._statement(sql, timeout, parameters) as cmd:
            if cmd.dialect.identity_sql is None:
                raise UnsupportedOperationError(
                    f"{cmd.dialect.product_type.value} has no connection-scoped identity"
                )
            rowcount = _rowcount(cmd.execute())
            identity = cmd.dialect.last_identity(cmd.cursor)
            return InsertResult(
                rowcount=rowcount, id=int(identity) if identity is not None else None
            )

    def execute_scalar(
        self, sql: str, timeout: int | None = -1, *, parameters: ParameterSet | None = None
    ) -> Any:
        """First column of the first row, or None when the statement returns no rows."""
        with self._statement(sql, timeout, parameters) as cmd:
            cur = cmd.execute()
            if not cur.description:
                return None
            row = cur.fetchone()
            return row[0] if row else None

    # ------------------------------------------------------------------
    # Stored procedures
    # ------------------------------------------------------------------

    def execute_select_sp(self, proc_name: str, timeout: int | None, *args: Any) -> DataTable:
        with self._procedure(proc_name, timeout, args) as cmd:
            return cmd.call().table

    def execute_select_sp_error_parms(
        self, proc_name: str, timeout: int | None, *args: Any
    ) -> ProcedureResult:
        with self._procedure(proc_name, timeout, args) as cmd:
            table = cmd.call().table
            code, message = self._error_parms(cmd)
            return ProcedureResult(value=table, return_code=code, return_message=message)

    def execute_non_query_sp(self, proc_name: str, timeout: int | None, *args: Any) -> int:
        with self._procedure(proc_name, timeout, args) as cmd:
            return cmd.call().rowcount

    def execute_non_query_sp_output(
        self, proc_name: str, timeout: int | None, output_parm: str, *args: Any
    ) -> Any:
        """Run a procedure and return the value of its *output_parm* output parameter."""
        with self._procedure(proc_name, timeout, args) as cmd:
            cmd.call()
            return _output_value(cmd.parameter(output_parm))

    def execute_non_query_sp_error_parms(
        self, proc_name: str, timeout: int | None, *args: Any
    ) -> ProcedureResult:
        with self._procedure(proc_name, timeout, args) as cmd:
            rowcount = cmd.call().rowcount
            code, message = self._error_parms(cmd)
            return ProcedureResult(value=rowcount, return_code=code, return_message=message)

    def execute_non_query_sp_output_error_parms(
        self, proc_name: str, timeout: int | None, output_parm: str, *args: Any
    ) -> ProcedureResult:
        with self._procedure(proc_name, timeout, args) as cmd:
            cmd.call()
            code, message = self._error_parms(cmd)
            value = _output_value(cmd.parameter(output_parm))
            return ProcedureResult(value=value, return_code=code, return_message=message)
