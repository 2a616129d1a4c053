"""
Errors raised by the data-access layer itself.

Driver errors (psycopg.Error, pymysql.Error, trino exceptions) are never
wrapped; they reach the caller unchanged.
"""


class DataAccessError(Exception):
    """Base class for errors raised by sqldataaccess."""


class DataSourceError(DataAccessError, ValueError):
    """Data source or connection string is incomplete or unsupported."""


class CommandBuildError(DataAccessError):
    """A command could not be constructed (bad timeout, unknown procedure, ...)."""


class ProcedureNotFoundError(CommandBuildError):
    """Parameter discovery found no routine with the given name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Stored procedure not found: {name}")
        self.name = name


class UnsupportedOperationError(CommandBuildError):
    """The product type cannot perform the requested operation."""


class DuplicateParameterError(CommandBuildError):
    """Two parameters resolve to the same bind key (``@id`` and ``id`` included)."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Parameter bound more than once: {key}")
        self.key = key


class ParameterNotFoundError(DataAccessError, KeyError):
    """A named output or error parameter is not part of the executed command."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"Parameter not found on command: {self.name}"


class TransactionStateError(DataAccessError):
    """Transaction operation attempted in the wrong state."""
