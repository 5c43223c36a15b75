"""
Statement execution against one driver connection.

`QueryExecutor.execute()` has two paths:

- no parameters: the SQL runs as-is
- parameters: prepare -> input(name, type) for each -> execute(values) -> unprepare

Both return the rows of the last result set when the statement produced one,
otherwise the affected-row count. Every statement issued through a connection
holds that connection's lock, so the prepare/execute/unprepare phases of two
concurrent calls never interleave.
"""
import logging
import time
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any

from roundsql.driver.base import DriverConnection, DriverResult, PreparedStatement
from roundsql.exceptions import DatabaseError, RoundSqlError
from roundsql.where import BoundParameter

logger = logging.getLogger(__name__)

Rows = list[dict[str, Any]]


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    async def wrapper(self, operation: str, params: Sequence[BoundParameter] = (), *args, **kwargs):
        start = time.time()
        values = {p.name: p.value for p in params}
        logger.debug(f'SQL:\n{operation}\nargs: {values}')
        try:
            return await func(self, operation, params, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{operation}\nargs: {values}')
            raise
        finally:
            elapsed = time.time() - start
            self.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


@asynccontextmanager
async def prepared_statement(connection: DriverConnection, sql: str,
                             params: Sequence[BoundParameter]) -> AsyncIterator[PreparedStatement]:
    """Prepare a statement with typed inputs and unprepare it on every exit path.
    """
    ps = connection.prepared_statement()
    for param in params:
        ps.input(param.name, param.native_type)
    await ps.prepare(sql)
    try:
        yield ps
    except BaseException:
        try:
            await ps.unprepare()
        except Exception as err:
            logger.error(f'Failed to unprepare statement after error: {err}')
        raise
    else:
        await ps.unprepare()


class QueryExecutor:
    """Runs statements on one connection (or transaction) handle

    The executor never opens, closes, pools or retries the connection. It
    keeps the number of statements issued and their total time.
    """

    def __init__(self, connection: DriverConnection) -> None:
        self.connection = connection
        self.calls = 0
        self.time = 0.0

    def addcall(self, elapsed: float) -> None:
        """Track execution statistics
        """
        self.time += elapsed
        self.calls += 1

    async def execute(self, sql: str, params: Sequence[BoundParameter] | None = None) -> Rows | int:
        """Execute SQL, binding parameters through a prepared statement when given.

        Args:
            sql: SQL text with `@name` placeholders
            params: Typed parameters for the placeholders

        Returns
            Rows of the last result set, or the affected-row count when the
            statement returned no result set

        Raises
            DatabaseError: With the driver's message
        """
        result = await self._execute(sql, list(params or ()))
        if result.has_rows:
            return result.rows
        return result.rows_affected

    @dumpsql
    async def _execute(self, sql: str, params: Sequence[BoundParameter]) -> DriverResult:
        async with self.connection.lock:
            try:
                if not params:
                    return await self.connection.query(sql)
                async with prepared_statement(self.connection, sql, params) as ps:
                    return await ps.execute({p.name: p.value for p in params})
            except RoundSqlError:
                raise
            except Exception as err:
                raise DatabaseError(str(err)) from err

    @dumpsql
    async def call(self, procedure: str, params: Sequence[BoundParameter]) -> DriverResult:
        """Execute a stored procedure with positional parameters.

        Returns
            DriverResult with the procedure's result sets and return value
        """
        async with self.connection.lock:
            request = self.connection.request()
            for param in params:
                request.input(param.name, param.native_type, param.value)
            try:
                return await request.execute(procedure)
            except RoundSqlError:
                raise
            except Exception as err:
                raise DatabaseError(str(err)) from err
