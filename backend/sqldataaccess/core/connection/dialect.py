"""
Per-product SQL differences the engine relies on.

- procedure parameter discovery (information_schema.routines / parameters)
- procedure invocation and output-parameter capture
- connection-scoped identity query
- starting a transaction at a given isolation level

Discovery always returns the return-value slot first, followed by the
formal parameters in ordinal order.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import psycopg

from sqldataaccess.core.errors import ProcedureNotFoundError, UnsupportedOperationError
from sqldataaccess.core.parameters import Parameter, ParameterDirection, ParameterSet
from sqldataaccess.core.result import DataTable, cursor_to_dicts, materialize_table
from sqldataaccess.models import IsolationLevelEnum, ProductTypeEnum

_log = logging.getLogger(__name__)

RETURN_VALUE_NAME = "RETURN_VALUE"

_MODES = {
    "IN": ParameterDirection.INPUT,
    "OUT": ParameterDirection.OUTPUT,
    "INOUT": ParameterDirection.INPUT_OUTPUT,
    "VARIADIC": ParameterDirection.INPUT,
}


@dataclass
class ProcedureParameter(Parameter):
    data_type: str | None = None


@dataclass
class ProcedureSignature:
    name: str
    routine_type: str  # PROCEDURE | FUNCTION
    parameters: list[ProcedureParameter]

    @property
    def is_function(self) -> bool:
        return self.routine_type.upper() == "FUNCTION"


@dataclass
class ProcedureOutcome:
    table: DataTable
    rowcount: int


def split_qualified_name(name: str) -> tuple[str | None, str]:
    """``schema.proc`` -> (schema, proc); bare names resolve in the current schema."""
    if "." in name:
        schema, _, proc = name.rpartition(".")
        return schema, proc
    return None, name


class Dialect(ABC):
    product_type: ProductTypeEnum
    paramstyle = "pyformat"
    identity_sql: str | None = None
    current_schema_sql = "current_schema()"

    # ------------------------------------------------------------------
    # Statement binding
    # ------------------------------------------------------------------

    def bind(self, parameters: ParameterSet) -> Any:
        """Bind parameters in the driver's paramstyle; None when there are none."""
        if not len(parameters):
            return None
        if self.paramstyle == "qmark":
            return parameters.to_sequence()
        return parameters.to_mapping()

    def placeholders(self, count: int) -> str:
        mark = "?" if self.paramstyle == "qmark" else "%s"
        return ", ".join([mark] * count)

    # ------------------------------------------------------------------
    # Procedures
    # ------------------------------------------------------------------

    def _discovery_sql(self) -> str:
        return (
            "SELECT r.specific_name AS specific_name, r.routine_type AS routine_type, "
            "p.parameter_name AS parameter_name, p.ordinal_position AS ordinal_position, "
            "p.parameter_mode AS parameter_mode, p.data_type AS data_type "
            "FROM information_schema.routines r "
            "LEFT JOIN information_schema.parameters p "
            "ON p.specific_schema = r.routine_schema "
            "AND p.specific_name = r.specific_name "
            "AND p.ordinal_position > 0 "
            f"WHERE r.routine_schema = COALESCE(%(schema)s, {self.current_schema_sql}) "
            "AND LOWER(r.routine_name) = LOWER(%(name)s) "
            "ORDER BY r.specific_name, p.ordinal_position"
        )

    def discover_procedure(self, cursor: Any, name: str) -> ProcedureSignature:
        """
        Read the formal parameter list of *name* from the server.

        Overloaded routines resolve to the first specific name. Unnamed
        formals (PostgreSQL) are named by ordinal: ``$1``, ``$2``. Raises
        ProcedureNotFoundError when nothing matches.
        """
        schema, proc = split_qualified_name(name)
        cursor.execute(self._discovery_sql(), {"schema": schema, "name": proc})
        rows = cursor_to_dicts(cursor)
        if not rows:
            raise ProcedureNotFoundError(name)
        specific = rows[0]["specific_name"]
        rows = [r for r in rows if r["specific_name"] == specific]

        parms: list[ProcedureParameter] = [
            ProcedureParameter(
                name=RETURN_VALUE_NAME,
                direction=ParameterDirection.RETURN_VALUE,
            )
        ]
        for row in rows:
            ordinal = row["ordinal_position"]
            if ordinal is None:
                # LEFT JOIN row of a routine without parameters
                continue
            mode = (row["parameter_mode"] or "IN").upper()
            parms.append(
                ProcedureParameter(
                    name=row["parameter_name"] or f"${ordinal}",
                    direction=_MODES.get(mode, ParameterDirection.INPUT),
                    data_type=row["data_type"],
                )
            )
        _log.debug("Discovered %d parameter(s) for %s", len(parms) - 1, name)
        return ProcedureSignature(
            name=name, routine_type=rows[0]["routine_type"] or "PROCEDURE", parameters=parms
        )

    @abstractmethod
    def call_procedure(
        self, cursor: Any, signature: ProcedureSignature, parameters: ParameterSet
    ) -> ProcedureOutcome:
        """Run the procedure and write output values back onto *parameters*."""

    # ------------------------------------------------------------------
    # Identity / transactions
    # ------------------------------------------------------------------

    def last_identity(self, cursor: Any) -> Any:
        """Last identity generated on this connection (not table-scoped)."""
        if self.identity_sql is None:
            raise UnsupportedOperationError(
                f"{self.product_type.value} has no connection-scoped identity"
            )
        cursor.execute(self.identity_sql)
        row = cursor.fetchone()
        return row[0] if row else None

    @abstractmethod
    def begin(self, conn: Any, isolation_level: IsolationLevelEnum | None) -> None:
        """Start a transaction on a non-autocommit connection."""


def _formals(parameters: ParameterSet) -> list[Parameter]:
    return [p for p in parameters if p.direction is not ParameterDirection.RETURN_VALUE]


def _return_slot(parameters: ParameterSet) -> Parameter | None:
    for p in parameters:
        if p.direction is ParameterDirection.RETURN_VALUE:
            return p
    return None


def _capture_row(outputs: list[Parameter], names: list[str], row: Any) -> None:
    """Copy values from an output row onto the matching output parameters."""
    by_name = {n.casefold(): v for n, v in zip(names, row)}
    for p in outputs:
        key = p.key.casefold()
        if key in by_name:
            p.value = by_name[key]


class PostgresDialect(Dialect):
    product_type = ProductTypeEnum.POSTGRES
    identity_sql = "SELECT lastval()"
    current_schema_sql = "current_schema()::text"

    def call_procedure(
        self, cursor: Any, signature: ProcedureSignature, parameters: ParameterSet
    ) -> ProcedureOutcome:
        formals = _formals(parameters)
        outputs = [p for p in formals if p.direction.is_output]

        if signature.is_function:
            # Function OUT parameters are part of the result, not the argument list
            args = [p.bind_value for p in formals if p.direction is not ParameterDirection.OUTPUT]
            cursor.execute(
                f"SELECT * FROM {signature.name}({self.placeholders(len(args))})", args
            )
            table = materialize_table(cursor)
            if table.rows:
                if outputs:
                    _capture_row(outputs, table.column_names, table.rows[0])
                elif len(table.columns) == 1 and len(table.rows) == 1:
                    slot = _return_slot(parameters)
                    if slot is not None:
                        slot.value = table.rows[0][0]
            return ProcedureOutcome(table=table, rowcount=len(table.rows))

        args = [p.bind_value for p in formals]
        cursor.execute(f"CALL {signature.name}({self.placeholders(len(args))})", args)
        rowcount = cursor.rowcount if cursor.rowcount is not None else 0
        table = materialize_table(cursor)
        if outputs and table.rows:
            _capture_row(outputs, table.column_names, table.rows[0])
        return ProcedureOutcome(table=table, rowcount=rowcount)

    def begin(self, conn: Any, isolation_level: IsolationLevelEnum | None) -> None:
        # psycopg starts the transaction implicitly on the first statement
        if isolation_level is not None:
            conn.isolation_level = psycopg.IsolationLevel[isolation_level.name]


class MySQLDialect(Dialect):
    product_type = ProductTypeEnum.MYSQL
    identity_sql = "SELECT LAST_INSERT_ID()"
    current_schema_sql = "DATABASE()"

    def call_procedure(
        self, cursor: Any, signature: ProcedureSignature, parameters: ParameterSet
    ) -> ProcedureOutcome:
        formals = _formals(parameters)

        if signature.is_function:
            args = [p.bind_value for p in formals]
            cursor.execute(
                f"SELECT {signature.name}({self.placeholders(len(args))})", args
            )
            table = materialize_table(cursor)
            slot = _return_slot(parameters)
            if slot is not None and table.rows:
                slot.value = table.rows[0][0]
            return ProcedureOutcome(table=table, rowcount=len(table.rows))

        cursor.callproc(signature.name, [p.bind_value for p in formals])
        table = materialize_table(cursor)
        # Drain remaining result sets; the last one carries the affected-row count
        while cursor.nextset():
            pass
        rowcount = cursor.rowcount if cursor.rowcount is not None else 0

        # pymysql exposes OUT/INOUT values as @_<procname>_<index>
        indexed = [(i, p) for i, p in enumerate(formals) if p.direction.is_output]
        if indexed:
            columns = ", ".join(f"@_{signature.name}_{i}" for i, _ in indexed)
            cursor.execute(f"SELECT {columns}")
            row = cursor.fetchone()
            if row is not None:
                for (_, p), value in zip(indexed, row):
                    p.value = value
        return ProcedureOutcome(table=table, rowcount=rowcount)

    def begin(self, conn: Any, isolation_level: IsolationLevelEnum | None) -> None:
        if isolation_level is not None:
            cur = conn.cursor()
            try:
                cur.execute(f"SET TRANSACTION ISOLATION LEVEL {isolation_level.value}")
            finally:
                cur.close()
        conn.begin()


class TrinoDialect(Dialect):
    product_type = ProductTypeEnum.TRINO
    paramstyle = "qmark"

    def discover_procedure(self, cursor: Any, name: str) -> ProcedureSignature:
        raise UnsupportedOperationError("Trino does not support stored procedures")

    def call_procedure(
        self, cursor: Any, signature: ProcedureSignature, parameters: ParameterSet
    ) -> ProcedureOutcome:
        raise UnsupportedOperationError("Trino does not support stored procedures")

    def begin(self, conn: Any, isolation_level: IsolationLevelEnum | None) -> None:
        # Level is fixed at connect time; the client opens the transaction lazily
        return None


_DIALECTS: dict[ProductTypeEnum, Dialect] = {
    ProductTypeEnum.POSTGRES: PostgresDialect(),
    ProductTypeEnum.MYSQL: MySQLDialect(),
    ProductTypeEnum.TRINO: TrinoDialect(),
}


def get_dialect(product_type: ProductTypeEnum) -> Dialect:
    return _DIALECTS[product_type]
