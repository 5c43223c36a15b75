"""
SQL Server driver over pyodbc (ODBC Driver 18+).

pyodbc is blocking, so every call that reaches the server runs in a worker
thread through `asyncio.to_thread`. pyodbc only knows positional `?` markers;
prepared statements rewrite the declared `@name` placeholders and bind values
in placeholder order with `setinputsizes` describing each native type.
"""
import asyncio
import datetime
import logging
from typing import Any

import dateutil.parser
from roundsql.driver.base import DriverConnection, DriverResult
from roundsql.driver.base import PreparedStatement, Request
from roundsql.exceptions import DatabaseError
from roundsql.options import DatabaseOptions
from roundsql.sql import replace_placeholders
from roundsql.types import SQL_SS_TIMESTAMPOFFSET, SQL_SS_UDT, SQL_SS_XML
from roundsql.types import NativeType
from roundsql.utils.sql_generation import build_exec_sql

from libb import attrdict

logger = logging.getLogger(__name__)

# types pyodbc cannot describe through setinputsizes; the driver infers them
_UNSIZED_TYPES = {SQL_SS_TIMESTAMPOFFSET, SQL_SS_UDT, SQL_SS_XML}

RETURN_VALUE = 'return_value'


def create_connection_string(options: DatabaseOptions) -> str:
    """Convert DatabaseOptions to an ODBC connection string.
    """
    parts = [
        f'DRIVER={{{options.driver}}}',
        f'SERVER={options.hostname},{options.port}',
        f'DATABASE={options.database}',
        ]
    if options.username:
        parts.append(f'UID={options.username}')
        parts.append(f'PWD={options.password or ""}')
    else:
        parts.append('Trusted_Connection=yes')
    parts.append(f'TrustServerCertificate={options.trust_server_certificate}')
    parts.append(f'APP={options.appname}')
    return ';'.join(parts) + ';'


def driver_message(err: Exception) -> str:
    """Message text of a pyodbc error, without the SQLSTATE tuple wrapper.
    """
    args = getattr(err, 'args', ())
    if len(args) > 1 and isinstance(args[1], str):
        return args[1]
    return str(err)


def _handle_datetimeoffset(value):
    """Convert a datetimeoffset value to a timezone-aware datetime.
    """
    if value is None or isinstance(value, datetime.datetime):
        return value
    if isinstance(value, bytes):
        value = value.decode()
    return dateutil.parser.parse(value)


def register_datetimeoffset_converter(connection) -> None:
    """Register the datetimeoffset output converter (SQL type -155).
    """
    try:
        connection.add_output_converter(SQL_SS_TIMESTAMPOFFSET, _handle_datetimeoffset)
        logger.debug('Registered datetimeoffset converter')
    except AttributeError:
        logger.warning('Could not register datetimeoffset converter - pyodbc may be outdated')


def input_sizes(native_types: list[NativeType]) -> list[tuple[int, int, int] | None]:
    return [None if t.sql_type in _UNSIZED_TYPES else t.binding for t in native_types]


def collect_results(cursor: Any) -> DriverResult:
    """Read every result set of an executed batch.

    Result sets with a description become lists of row dicts; statements
    without one (INSERT, UPDATE, DELETE) add to the affected-row count.
    """
    result = DriverResult()
    while True:
        if cursor.description:
            columns = [d[0] for d in cursor.description]
            result.recordsets.append([attrdict(zip(columns, row)) for row in cursor.fetchall()])
        elif cursor.rowcount is not None and cursor.rowcount > 0:
            result.rows_affected += cursor.rowcount
        if not cursor.nextset():
            break
    return result


class OdbcPreparedStatement(PreparedStatement):

    def __init__(self, connection: 'OdbcConnection') -> None:
        super().__init__()
        self.connection = connection
        self.cursor = None
        self._odbc_sql = None
        self._order: list[str] = []

    async def _prepare(self, sql: str) -> None:
        self._odbc_sql, self._order = replace_placeholders(sql, frozenset(self.inputs))
        self.cursor = self.connection.dbapi_connection.cursor()
        logger.debug(f'Prepared statement with {len(self._order)} placeholder(s)')

    async def _execute(self, values: dict[str, Any]) -> DriverResult:
        missing = [name for name in self._order if name not in values]
        if missing:
            raise DatabaseError(f'Must supply a value for parameter @{missing[0]}.')
        params = [values[name] for name in self._order]
        sizes = input_sizes([self.inputs[name] for name in self._order])
        return await asyncio.to_thread(self.connection.run, self._odbc_sql, params,
                                       sizes, self.cursor)

    async def _unprepare(self) -> None:
        if self.cursor is not None:
            self.cursor.close()
            self.cursor = None


class OdbcRequest(Request):

    def __init__(self, connection: 'OdbcConnection') -> None:
        super().__init__()
        self.connection = connection

    async def execute(self, procedure: str) -> DriverResult:
        sql = build_exec_sql(procedure, len(self.inputs), return_name=RETURN_VALUE)
        params = [value for _, _, value in self.inputs]
        sizes = input_sizes([native_type for _, native_type, _ in self.inputs])
        result = await asyncio.to_thread(self.connection.run, sql, params, sizes)
        status = result.recordsets.pop() if result.recordsets else []
        if status:
            result.return_value = status[0][RETURN_VALUE]
        return result


class OdbcConnection(DriverConnection):
    """pyodbc connection (or the caller's open transaction on it).
    """

    def __init__(self, dbapi_connection: Any) -> None:
        super().__init__()
        self.dbapi_connection = dbapi_connection

    @classmethod
    async def connect(cls, options: DatabaseOptions) -> 'OdbcConnection':
        """Open a new pyodbc connection from options.
        """
        import pyodbc

        conn_str = create_connection_string(options)
        try:
            dbapi_connection = await asyncio.to_thread(
                pyodbc.connect, conn_str, autocommit=options.autocommit,
                timeout=options.timeout or 0)
        except pyodbc.Error as err:
            raise DatabaseError(driver_message(err)) from err
        register_datetimeoffset_converter(dbapi_connection)
        logger.debug(f'Connected to {options.hostname}/{options.database}')
        return cls(dbapi_connection)

    def run(self, sql: str, params: list[Any] | None = None,
            sizes: list | None = None, cursor: Any = None) -> DriverResult:
        """Execute a batch on a cursor and collect its results (blocking).
        """
        import pyodbc

        own_cursor = cursor is None
        cursor = cursor or self.dbapi_connection.cursor()
        try:
            if sizes:
                cursor.setinputsizes(sizes)
            cursor.execute(sql, *(params or ()))
            return collect_results(cursor)
        except pyodbc.Error as err:
            raise DatabaseError(driver_message(err)) from err
        finally:
            if own_cursor:
                cursor.close()

    async def query(self, sql: str) -> DriverResult:
        return await asyncio.to_thread(self.run, sql)

    def prepared_statement(self) -> OdbcPreparedStatement:
        return OdbcPreparedStatement(self)

    def request(self) -> OdbcRequest:
        return OdbcRequest(self)

    async def commit(self) -> None:
        await asyncio.to_thread(self.dbapi_connection.commit)

    async def rollback(self) -> None:
        await asyncio.to_thread(self.dbapi_connection.rollback)

    async def close(self) -> None:
        await asyncio.to_thread(self.dbapi_connection.close)
