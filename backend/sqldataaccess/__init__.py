"""
sqldataaccess: run statements, stored procedures and explicit transactions
against PostgreSQL, MySQL or Trino through their DB-API drivers.
"""

from sqldataaccess.core.errors import (
    CommandBuildError,
    DataAccessError,
    DataSourceError,
    DuplicateParameterError,
    ParameterNotFoundError,
    ProcedureNotFoundError,
    TransactionStateError,
    UnsupportedOperationError,
)
from sqldataaccess.core.parameters import UNSET, Parameter, ParameterDirection, ParameterSet
from sqldataaccess.core.result import DataColumn, DataSet, DataTable
from sqldataaccess.engines import InsertResult, ProcedureResult, SqlDataAccess
from sqldataaccess.models import DataSource, IsolationLevelEnum, ProductTypeEnum

__all__ = [
    "SqlDataAccess",
    "InsertResult",
    "ProcedureResult",
    "DataSource",
    "ProductTypeEnum",
    "IsolationLevelEnum",
    "Parameter",
    "ParameterDirection",
    "ParameterSet",
    "UNSET",
    "DataColumn",
    "DataTable",
    "DataSet",
    "DataAccessError",
    "DataSourceError",
    "CommandBuildError",
    "DuplicateParameterError",
    "ProcedureNotFoundError",
    "UnsupportedOperationError",
    "ParameterNotFoundError",
    "TransactionStateError",
]
