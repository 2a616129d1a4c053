"""
CommandBuilder: turn a statement or procedure name into a connection-bound command.

A command runs on the transaction's connection when one is active, otherwise
on a freshly opened autocommit connection that the command owns and closes.
"""

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Sequence

from sqldataaccess.core.connection import (
    apply_timeout,
    close_quietly,
    connect,
    reset_timeout,
    validate_timeout,
)
from sqldataaccess.core.connection.dialect import (
    Dialect,
    ProcedureOutcome,
    ProcedureParameter,
    ProcedureSignature,
)
from sqldataaccess.core.errors import CommandBuildError, ParameterNotFoundError
from sqldataaccess.core.parameters import Parameter, ParameterSet
from sqldataaccess.models import DataSource

if TYPE_CHECKING:
    from sqldataaccess.engines.transaction import TransactionContext

_log = logging.getLogger(__name__)


class CommandKind(str, Enum):
    STATEMENT = "STATEMENT"
    STORED_PROCEDURE = "STORED_PROCEDURE"


@dataclass(frozen=True)
class Command:
    """
    A built command. Output values are written back onto ``parameters``
    after a procedure call; everything else is fixed at build time.
    """

    kind: CommandKind
    text: str
    timeout: int | None
    parameters: ParameterSet
    connection: Any
    cursor: Any
    dialect: Dialect
    owns_connection: bool
    signature: ProcedureSignature | None = None

    @property
    def bind_args(self) -> Any:
        return self.dialect.bind(self.parameters)

    def execute(self) -> Any:
        """Run a statement command on its cursor."""
        _log.debug("Executing statement: %s", self.text)
        args = self.bind_args
        if args is None:
            self.cursor.execute(self.text)
        else:
            self.cursor.execute(self.text, args)
        return self.cursor

    def call(self) -> ProcedureOutcome:
        """Run a procedure command; output parameters are captured in place."""
        if self.signature is None:
            raise CommandBuildError(f"{self.text!r} is a statement, not a procedure command")
        _log.debug("Calling procedure: %s", self.text)
        return self.dialect.call_procedure(self.cursor, self.signature, self.parameters)

    def parameter(self, name: str) -> Parameter:
        parm = self.parameters.get(name)
        if parm is None:
            raise ParameterNotFoundError(name)
        return parm

    def release(self, *, keep_connection_settings: bool = False) -> None:
        """
        Close the cursor, and the connection when this command opened it.

        keep_connection_settings: the connection stays open (transaction) and
        a per-call timeout must be taken off it again.
        """
        close_quietly(self.cursor)
        if self.owns_connection:
            close_quietly(self.connection)
        elif keep_connection_settings and self.timeout:
            reset_timeout(self.connection, self.dialect.product_type)


def bind_positional(
    discovered: Sequence[ProcedureParameter], args: Sequence[Any]
) -> ParameterSet:
    """
    Assign positional *args* to discovered procedure parameters.

    The first discovered entry is the return-value slot and is skipped.
    Remaining slots take args in order; slots without an arg are NULL and
    args beyond the last slot are ignored.
    """
    formals = discovered[1:]
    for i, parm in enumerate(formals):
        parm.value = args[i] if i < len(args) else None
    if len(args) > len(formals):
        _log.debug("Ignoring %d argument(s) beyond the procedure signature", len(args) - len(formals))
    return ParameterSet(list(discovered))


class CommandBuilder:
    def __init__(self, datasource: DataSource, dialect: Dialect) -> None:
        self._datasource = datasource
        self._dialect = dialect

    def _acquire(self, transaction: "TransactionContext | None") -> tuple[Any, bool]:
        if transaction is not None and transaction.active:
            return transaction.connection, False
        return connect(self._datasource, autocommit=True), True

    def _abandon(
        self,
        cursor: Any,
        conn: Any,
        owns_connection: bool,
        transaction: "TransactionContext | None",
    ) -> None:
        close_quietly(cursor)
        if owns_connection:
            close_quietly(conn)
        if transaction is not None and transaction.active:
            _log.warning("Command build failed, rolling back transaction %r", transaction.name)
            transaction.rollback()

    def build_statement(
        self,
        sql: str,
        timeout: int | None = -1,
        parameters: Iterable[Parameter] | None = None,
        *,
        transaction: "TransactionContext | None" = None,
    ) -> Command:
        """
        Text command with every declared parameter bound (None and UNSET as NULL).

        Parameters are copied so the caller's set can be cleared independently.
        """
        conn: Any = None
        cur: Any = None
        owns = False
        try:
            timeout_sec = validate_timeout(timeout)
            conn, owns = self._acquire(transaction)
            apply_timeout(conn, timeout_sec, self._dialect.product_type)
            cur = conn.cursor()
            bound = ParameterSet([dataclasses.replace(p) for p in parameters or ()])
            return Command(
                kind=CommandKind.STATEMENT,
                text=sql,
                timeout=timeout_sec,
                parameters=bound,
                connection=conn,
                cursor=cur,
                dialect=self._dialect,
                owns_connection=owns,
            )
        except Exception:
            self._abandon(cur, conn, owns, transaction)
            raise

    def build_procedure(
        self,
        proc_name: str,
        timeout: int | None,
        args: Sequence[Any] = (),
        *,
        transaction: "TransactionContext | None" = None,
    ) -> Command:
        """Procedure command bound to the server-discovered signature of *proc_name*."""
        conn: Any = None
        cur: Any = None
        owns = False
        try:
            timeout_sec = validate_timeout(timeout)
            conn, owns = self._acquire(transaction)
            apply_timeout(conn, timeout_sec, self._dialect.product_type)
            cur = conn.cursor()
            signature = self._dialect.discover_procedure(cur, proc_name)
            bound = bind_positional(signature.parameters, args)
            return Command(
                kind=CommandKind.STORED_PROCEDURE,
                text=proc_name,
                timeout=timeout_sec,
                parameters=bound,
                connection=conn,
                cursor=cur,
                dialect=self._dialect,
                owns_connection=owns,
                signature=signature,
            )
        except Exception:
            self._abandon(cur, conn, owns, transaction)
            raise

