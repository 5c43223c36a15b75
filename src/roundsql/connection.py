"""
Connection entry points and the `RoundSql` client.

`connect()` opens a SQL Server connection from options and returns a client
that owns it:

    async with await roundsql.connect('mssql', config=config) as db:
        models = await db.discover_model(['Person', 'Address'], ['Person', 'Address'])
        jon = await models['Person'].find_one({'FirstName': {'value': 'Jon'}})

A client can also wrap a connection the caller manages (for example one with
an open transaction); closing the client then leaves that connection alone.
The `roundsql` module functions take either a client or a bare driver
connection.
"""
import logging
from dataclasses import fields
from typing import Any

from roundsql import where as where_clause
from roundsql.driver.base import DriverConnection
from roundsql.driver.odbc import OdbcConnection
from roundsql.factory import ModelFactory
from roundsql.model import Model
from roundsql.options import DatabaseOptions
from roundsql.procedure import StoredProcedureInvoker
from roundsql.query import QueryExecutor, Rows
from roundsql.schema import DEFAULT_SCHEMA_TTL, SchemaInspector

from libb import load_options

logger = logging.getLogger(__name__)

__all__ = [
    'RoundSql',
    'connect',
    'as_client',
]


class RoundSql:
    """Data-access client over one driver connection

    Holds the connection's executor together with the schema inspector,
    model factory and procedure invoker sharing it.
    """

    def __init__(self, connection: DriverConnection, options: DatabaseOptions | None = None,
                 owned: bool = False) -> None:
        ttl = options.schema_cache_ttl if options is not None else DEFAULT_SCHEMA_TTL
        self.connection = connection
        self.options = options
        self.owned = owned
        self.executor = QueryExecutor(connection)
        self.inspector = SchemaInspector(self.executor, ttl=ttl)
        self.factory = ModelFactory(self.inspector, self.executor)
        self.procedures = StoredProcedureInvoker(self.inspector, self.executor)

    def __repr__(self) -> str:
        database = self.options.database if self.options else None
        return f'RoundSql(database={database!r}, calls={self.calls})'

    async def __aenter__(self) -> 'RoundSql':
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if self.owned:
            await self.close()
        return False

    @property
    def calls(self) -> int:
        return self.executor.calls

    @property
    def time(self) -> float:
        return self.executor.time

    async def discover_model(self, table_names: str | list[str], model_names: str | list[str],
                             bypass_cache: bool = False) -> dict[str, Model]:
        """Discover tables and return a dict of model name to Model.
        """
        return await self.factory.discover(table_names, model_names, bypass_cache=bypass_cache)

    async def call_procedure(self, procedure: str, args: list[Any] | tuple = ()) -> tuple[list[Rows], Any]:
        """Call a stored procedure, returning (result sets, return value).
        """
        return await self.procedures.call(procedure, args)

    async def run_query(self, sql: str, params: dict[str, Any] | None = None) -> Rows | int:
        """Run arbitrary SQL with typed `@name` parameters.

        Args:
            sql: SQL text
            params: `{name: {'value': v, 'type': NativeType}}`

        Returns
            Rows of the last result set, or the affected-row count

        Raises
            ValidationError: If a parameter has no value or no type
        """
        predicates = where_clause.normalize(params)
        bound = where_clause.to_bound_parameters(predicates)
        return await self.executor.execute(sql, bound)

    def clear_cache(self, table_name: str | None = None) -> None:
        """Forget discovered schemas and procedure parameters."""
        self.inspector.clear_cache(table_name)

    async def commit(self) -> None:
        await self.connection.commit()

    async def rollback(self) -> None:
        await self.connection.rollback()

    async def close(self) -> None:
        """Close the connection and drop its cached metadata."""
        await self.connection.close()
        self.inspector.release()
        logger.debug('Closed connection')


def as_client(cn: 'RoundSql | DriverConnection') -> RoundSql:
    """Return `cn` if it is a client, otherwise a client wrapping the connection.
    """
    if isinstance(cn, RoundSql):
        return cn
    if isinstance(cn, DriverConnection):
        return RoundSql(cn)
    raise TypeError(f'Expected RoundSql or DriverConnection, got {type(cn).__name__}')


@load_options(cls=DatabaseOptions)
async def connect(options: DatabaseOptions | dict[str, Any] | str,
                  config: Any | None = None, **kw: Any) -> RoundSql:
    """Connect to SQL Server over ODBC

    Args:
        options: Can be:
                - DatabaseOptions object
                - String path to configuration
                - Dictionary of options
                - Options specified as keyword arguments
        config: Configuration object (for loading from config files)
        **kw: Additional keyword arguments to override options

    Returns
        RoundSql client that owns the new connection
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options_func = load_options(cls=DatabaseOptions)(lambda o, c: o)
        options = options_func(options, config, **kw)

    connection = await OdbcConnection.connect(options)
    logger.debug(f'Connected to {options.hostname}/{options.database} as {options.appname}')
    return RoundSql(connection, options, owned=True)
