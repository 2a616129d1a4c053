"""
Engines: command construction, transaction context and the SqlDataAccess executor.
"""

from sqldataaccess.engines.command import Command, CommandBuilder, CommandKind
from sqldataaccess.engines.executor import InsertResult, ProcedureResult, SqlDataAccess
from sqldataaccess.engines.transaction import TransactionContext

__all__ = [
    "Command",
    "CommandBuilder",
    "CommandKind",
    "SqlDataAccess",
    "InsertResult",
    "ProcedureResult",
    "TransactionContext",
]
