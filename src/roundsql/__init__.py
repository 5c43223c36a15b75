"""
Schema-driven data access for SQL Server.

All operations can be called either as:
- Module functions: await roundsql.discover_model(cn, 'Person', 'Person')
- RoundSql methods: await cn.discover_model('Person', 'Person')

where `cn` is a `RoundSql` client (from `connect()`) or a bare driver
connection. The module functions are facades over the client.
"""
__version__ = '0.1.0'

from typing import Any

from roundsql import types
from roundsql.adapters import ColumnDescriptor, TypeMapper, map_type
from roundsql.connection import RoundSql, as_client, connect
from roundsql.driver import DriverConnection, DriverResult, OdbcConnection
from roundsql.exceptions import ArgumentCountMismatchError, ArgumentShapeMismatchError
from roundsql.exceptions import DatabaseError, MissingPrimaryKeyError, RoundSqlError
from roundsql.exceptions import SchemaNotFoundError, UnrecognizedTypeError, ValidationError
from roundsql.model import DEFAULT_LIMIT, Model, ModelDefinition, Record
from roundsql.options import DatabaseOptions
from roundsql.schema import TableSchema
from roundsql.types import NativeType
from roundsql.where import BoundParameter, Predicate


async def discover_model(cn: RoundSql | DriverConnection, table_names: str | list[str],
                         model_names: str | list[str]) -> dict[str, Model]:
    """Discover one or more tables and return a dict of model name to Model.
    """
    return await as_client(cn).discover_model(table_names, model_names)


async def call_procedure(cn: RoundSql | DriverConnection, procedure: str,
                         args: list[Any] | tuple = ()) -> tuple[list[list[dict]], Any]:
    """Call a stored procedure, returning (result sets, return value).
    """
    return await as_client(cn).call_procedure(procedure, args)


async def run_query(cn: RoundSql | DriverConnection, sql: str,
                    params: dict[str, Any] | None = None) -> list[dict] | int:
    """Run SQL with `{name: {'value': v, 'type': NativeType}}` parameters.
    """
    return await as_client(cn).run_query(sql, params)


__all__ = [
    # Connection
    'connect',
    'RoundSql',
    'DatabaseOptions',
    'DriverConnection',
    'DriverResult',
    'OdbcConnection',
    # Operations
    'discover_model',
    'call_procedure',
    'run_query',
    # Models
    'DEFAULT_LIMIT',
    'Model',
    'ModelDefinition',
    'Record',
    'TableSchema',
    'ColumnDescriptor',
    'Predicate',
    'BoundParameter',
    # Types
    'types',
    'NativeType',
    'TypeMapper',
    'map_type',
    # Exceptions
    'RoundSqlError',
    'ValidationError',
    'SchemaNotFoundError',
    'ArgumentShapeMismatchError',
    'ArgumentCountMismatchError',
    'MissingPrimaryKeyError',
    'UnrecognizedTypeError',
    'DatabaseError',
]
